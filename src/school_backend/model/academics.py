import enum
from sqlalchemy import CheckConstraint, Column, Date, Enum, Float, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from .base import Base, id_column, created_at_column, updated_at_column


class AttendanceStatus(str, enum.Enum):
    PRESENT = "Present"
    ABSENT = "Absent"
    LATE = "Late"
    EXCUSED = "Excused"


class Grade(Base):
    __tablename__ = 'grade'
    __table_args__ = (
        CheckConstraint('score >= 0 AND score <= 100', name='ck_grade_score_range'),
        Index('grade_student_term_idx', 'student_id', 'term'),
    )

    id = id_column()
    created_at = created_at_column()
    updated_at = updated_at_column()
    subject = Column(String(255), nullable=False)
    term = Column(String(64), nullable=False)
    score = Column(Float, nullable=False)
    grade = Column(String(8), nullable=False)
    remarks = Column(String(2048))
    student_id = Column(ForeignKey('student.id', ondelete='CASCADE'), nullable=False)
    teacher_id = Column(ForeignKey('teacher.id', ondelete='SET NULL'), nullable=True)

    student = relationship("Student", back_populates="grades")
    teacher = relationship("Teacher")


class Attendance(Base):
    __tablename__ = 'attendance'
    __table_args__ = (
        Index('attendance_student_date_key', 'student_id', 'date', unique=True),
    )

    id = id_column()
    created_at = created_at_column()
    updated_at = updated_at_column()
    date = Column(Date, nullable=False, index=True)
    status = Column(Enum(AttendanceStatus, name='attendance_status', values_callable=lambda e: [m.value for m in e]), nullable=False)
    student_id = Column(ForeignKey('student.id', ondelete='CASCADE'), nullable=False)

    student = relationship("Student", back_populates="attendances")
