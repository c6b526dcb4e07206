from sqlalchemy import (
    Boolean,
    Column,
    Date,
    ForeignKey,
    Integer,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from syncschool.models.base import Base, TenantModel, TimestampMixin

class_subjects = Table(
    "class_subjects",
    Base.metadata,
    Column("class_id", Integer, ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
    Column("subject_id", Integer, ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
)


class AcademicTerm(TimestampMixin, TenantModel):
    __tablename__ = "academic_terms"

    name = Column(String(100), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<AcademicTerm(id={self.id}, name='{self.name}', active={self.is_active})>"


class Subject(TimestampMixin, TenantModel):
    __tablename__ = "subjects"
    __table_args__ = (
        UniqueConstraint("code", "school_id", name="uq_subjects_code_school"),
    )

    name = Column(String(100), nullable=False)
    code = Column(String(20), nullable=False)

    def __repr__(self):
        return f"<Subject(id={self.id}, code='{self.code}')>"


class Class(TimestampMixin, TenantModel):
    __tablename__ = "classes"
    __table_args__ = (
        UniqueConstraint("school_id", "name", "academic_term_id", name="uq_classes_name_term"),
    )

    name = Column(String(100), nullable=False)
    grade_level = Column(Integer, nullable=False)
    teacher_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    academic_term_id = Column(Integer, ForeignKey("academic_terms.id", ondelete="RESTRICT"), nullable=False)

    teacher = relationship("User", lazy="selectin")
    academic_term = relationship("AcademicTerm", lazy="selectin")
    subjects = relationship("Subject", secondary=class_subjects, lazy="selectin", order_by="Subject.name")
    students = relationship("Student", back_populates="class_", passive_deletes=True)

    def __repr__(self):
        return f"<Class(id={self.id}, name='{self.name}', grade={self.grade_level})>"
