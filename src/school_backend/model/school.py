from sqlalchemy import Column, Date, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from .base import Base, id_column, created_at_column, updated_at_column


class Teacher(Base):
    __tablename__ = 'teacher'

    id = id_column()
    created_at = created_at_column()
    updated_at = updated_at_column()
    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, unique=True)
    department = Column(String(255), nullable=False)
    qualification = Column(String(255), nullable=False)
    contact_number = Column(String(64))
    address = Column(String(1024))

    user = relationship("User", back_populates="teacher")
    classes = relationship("SchoolClass", back_populates="teacher")


class Parent(Base):
    __tablename__ = 'parent'

    id = id_column()
    created_at = created_at_column()
    updated_at = updated_at_column()
    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, unique=True)
    contact_number = Column(String(64))
    address = Column(String(1024))
    relationship_to_child = Column('relationship', String(64))

    user = relationship("User", back_populates="parent")
    children = relationship("Student", back_populates="parent")


class SchoolClass(Base):
    __tablename__ = 'class'

    id = id_column()
    created_at = created_at_column()
    updated_at = updated_at_column()
    name = Column(String(255), nullable=False, unique=True)
    grade = Column(String(64), nullable=False)
    section = Column(String(64), nullable=False)
    teacher_id = Column(ForeignKey('teacher.id', ondelete='SET NULL'), nullable=True, index=True)

    teacher = relationship("Teacher", back_populates="classes")
    students = relationship("Student", back_populates="school_class")


class Student(Base):
    __tablename__ = 'student'
    __table_args__ = (
        Index('student_class_idx', 'class_id'),
        Index('student_parent_idx', 'parent_id'),
    )

    id = id_column()
    created_at = created_at_column()
    updated_at = updated_at_column()
    # A student record may exist before its login account does
    user_id = Column(ForeignKey('user.id', ondelete='SET NULL'), nullable=True, unique=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    admission_number = Column(String(64), nullable=False, unique=True)
    date_of_birth = Column(Date, nullable=False)
    gender = Column(String(32), nullable=False)
    enrollment_date = Column(Date, nullable=False)
    section = Column(String(64), nullable=False)
    address = Column(String(1024))
    class_id = Column(ForeignKey('class.id', ondelete='RESTRICT'), nullable=False)
    parent_id = Column(ForeignKey('parent.id', ondelete='RESTRICT'), nullable=False)

    user = relationship("User", back_populates="student")
    school_class = relationship("SchoolClass", back_populates="students")
    parent = relationship("Parent", back_populates="children")
    grades = relationship("Grade", back_populates="student", cascade="all, delete-orphan")
    attendances = relationship("Attendance", back_populates="student", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def grade(self) -> str | None:
        """Level of the class the student is enrolled in."""
        return self.school_class.grade if self.school_class is not None else None
