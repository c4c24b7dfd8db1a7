from typing import Optional
from sqlalchemy import select, exists, false
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from school_backend.model.auth import Role
from school_backend.model.school import SchoolClass, Student, Parent
from school_backend.permissions.principal import Principal


class ClassScopeQueryBuilder:
    """Ownership subqueries along Teacher -> Class -> Student"""

    @classmethod
    def teacher_class_ids(cls, teacher_id: str) -> Select:
        if teacher_id is None:
            return select(SchoolClass.id).where(false())
        return select(SchoolClass.id).where(SchoolClass.teacher_id == teacher_id)

    @classmethod
    def teacher_student_ids(cls, teacher_id: str) -> Select:
        if teacher_id is None:
            return select(Student.id).where(false())
        return (
            select(Student.id)
            .join(SchoolClass, SchoolClass.id == Student.class_id)
            .where(SchoolClass.teacher_id == teacher_id)
        )

    @classmethod
    def teacher_parent_ids(cls, teacher_id: str) -> Select:
        if teacher_id is None:
            return select(Student.parent_id).where(false())
        return (
            select(Student.parent_id)
            .join(SchoolClass, SchoolClass.id == Student.class_id)
            .where(SchoolClass.teacher_id == teacher_id)
        )

    @classmethod
    def teacher_teaches_student(cls, teacher_id: str, student_id: str, db: Session) -> bool:
        if teacher_id is None or student_id is None:
            return False
        stmt = select(
            exists().where(
                Student.id == student_id,
                Student.class_id == SchoolClass.id,
                SchoolClass.teacher_id == teacher_id,
            )
        )
        return bool(db.execute(stmt).scalar())

    @classmethod
    def teacher_teaches_class(cls, teacher_id: str, class_id: str, db: Session) -> bool:
        if teacher_id is None or class_id is None:
            return False
        stmt = select(exists().where(SchoolClass.id == class_id, SchoolClass.teacher_id == teacher_id))
        return bool(db.execute(stmt).scalar())


class FamilyScopeQueryBuilder:
    """Ownership subqueries along Parent -> Student"""

    @classmethod
    def parent_student_ids(cls, parent_id: str) -> Select:
        if parent_id is None:
            return select(Student.id).where(false())
        return select(Student.id).where(Student.parent_id == parent_id)

    @classmethod
    def student_parent_ids(cls, student_id: str) -> Select:
        if student_id is None:
            return select(Student.parent_id).where(false())
        return select(Student.parent_id).where(Student.id == student_id)


class StudentScopeQueryBuilder:
    """Resolves the set of students a principal may see"""

    @classmethod
    def visible_student_ids(cls, principal: Principal) -> Optional[Select]:
        """Subquery of visible student ids, ``None`` meaning unrestricted (admin).

        A principal whose profile is missing gets a subquery matching nothing,
        never an unrestricted one.
        """
        if principal.is_admin:
            return None

        if principal.role == Role.TEACHER:
            return ClassScopeQueryBuilder.teacher_student_ids(principal.teacher_id)

        if principal.role == Role.PARENT:
            return FamilyScopeQueryBuilder.parent_student_ids(principal.parent_id)

        if principal.role == Role.STUDENT:
            if principal.student_id is None:
                return select(Student.id).where(false())
            return select(Student.id).where(Student.id == principal.student_id)

        return select(Student.id).where(false())

    @classmethod
    def student_visible(cls, principal: Principal, student_id: str, db: Session) -> bool:
        subquery = cls.visible_student_ids(principal)
        if subquery is None:
            stmt = select(exists().where(Student.id == student_id))
        else:
            stmt = select(exists().where(Student.id == student_id, Student.id.in_(subquery)))
        return bool(db.execute(stmt).scalar())

    @classmethod
    def visible_parent_ids(cls, principal: Principal) -> Optional[Select]:
        if principal.is_admin:
            return None

        if principal.role == Role.TEACHER:
            return ClassScopeQueryBuilder.teacher_parent_ids(principal.teacher_id)

        if principal.role == Role.PARENT:
            if principal.parent_id is None:
                return select(Parent.id).where(false())
            return select(Parent.id).where(Parent.id == principal.parent_id)

        if principal.role == Role.STUDENT:
            return FamilyScopeQueryBuilder.student_parent_ids(principal.student_id)

        return select(Parent.id).where(false())
