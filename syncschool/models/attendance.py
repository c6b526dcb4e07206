from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Index, Integer
from sqlalchemy.orm import relationship

from syncschool.models.base import TenantModel, utcnow
from syncschool.schemas.enums import AttendanceStatus


class Attendance(TenantModel):
    __tablename__ = "attendance"
    __table_args__ = (
        Index("ix_attendance_class_date", "class_id", "date"),
    )

    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    status = Column(Enum(AttendanceStatus, name="attendance_status"), nullable=False)
    recorded_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    student = relationship("Student", lazy="selectin")

    def __repr__(self):
        return f"<Attendance(student_id={self.student_id}, date={self.date}, status='{self.status}')>"
