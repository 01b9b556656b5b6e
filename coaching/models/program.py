import uuid
from datetime import date, datetime, timezone
from sqlalchemy import String, Integer, ForeignKey, Text, Date, DateTime, Boolean, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from coaching.database import Base


class Program(Base):
    __tablename__ = "programs"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_weeks: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    coach_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    coach = relationship("User", foreign_keys=[coach_id])
    weeks = relationship(
        "ProgramWeek",
        back_populates="program",
        cascade="all, delete-orphan",
        order_by="ProgramWeek.week_number",
    )
    assignments = relationship("ProgramAssignment", back_populates="program", cascade="all, delete-orphan")


class ProgramWeek(Base):
    __tablename__ = "program_weeks"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    program_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("programs.id"), nullable=False, index=True)
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str | None] = mapped_column(String, nullable=True)

    program = relationship("Program", back_populates="weeks")
    days = relationship(
        "ProgramDay",
        back_populates="week",
        cascade="all, delete-orphan",
        order_by="ProgramDay.day_number",
    )


class ProgramDay(Base):
    __tablename__ = "program_days"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    week_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("program_weeks.id"), nullable=False, index=True)
    day_number: Mapped[int] = mapped_column(Integer, nullable=False)  # 1 = Monday
    title: Mapped[str | None] = mapped_column(String, nullable=True)
    is_rest_day: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    warmup_title: Mapped[str | None] = mapped_column(String, nullable=True)
    warmup_description: Mapped[str | None] = mapped_column(Text, nullable=True)

    week = relationship("ProgramWeek", back_populates="days")
    drills = relationship(
        "ProgramDrill",
        back_populates="day",
        cascade="all, delete-orphan",
        order_by="ProgramDrill.order",
    )


class ProgramDrill(Base):
    __tablename__ = "program_drills"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    day_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("program_days.id"), nullable=False, index=True)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration: Mapped[str | None] = mapped_column(String, nullable=True)
    video_url: Mapped[str | None] = mapped_column(String, nullable=True)
    video_id: Mapped[str | None] = mapped_column(String, nullable=True)
    video_title: Mapped[str | None] = mapped_column(String, nullable=True)
    video_thumbnail: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    sets: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reps: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tempo: Mapped[str | None] = mapped_column(String, nullable=True)
    type: Mapped[str | None] = mapped_column(String, nullable=True)  # exercise | routine
    routine_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("routines.id", ondelete="SET NULL"), nullable=True)

    superset_id: Mapped[str | None] = mapped_column(String, nullable=True)
    superset_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    superset_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    superset_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    superset_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    coach_instructions_what_to_do: Mapped[str | None] = mapped_column(Text, nullable=True)
    coach_instructions_how_to_do_it: Mapped[str | None] = mapped_column(Text, nullable=True)
    coach_instructions_key_points: Mapped[list | None] = mapped_column(JSON, nullable=True)
    coach_instructions_common_mistakes: Mapped[list | None] = mapped_column(JSON, nullable=True)
    coach_instructions_easier: Mapped[str | None] = mapped_column(Text, nullable=True)
    coach_instructions_harder: Mapped[str | None] = mapped_column(Text, nullable=True)
    coach_instructions_equipment: Mapped[str | None] = mapped_column(Text, nullable=True)
    coach_instructions_setup: Mapped[str | None] = mapped_column(Text, nullable=True)

    day = relationship("ProgramDay", back_populates="drills")


class ProgramAssignment(Base):
    __tablename__ = "program_assignments"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    program_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("programs.id"), nullable=False, index=True)
    client_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("clients.id"), nullable=False, index=True)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    program = relationship("Program", back_populates="assignments")
    client = relationship("Client")
    replacements = relationship(
        "ProgramDayReplacement",
        back_populates="assignment",
        cascade="all, delete-orphan",
        order_by="ProgramDayReplacement.replaced_date",
    )


class ProgramDayReplacement(Base):
    """Per-date override of an assignment.

    No lesson and no substitute program means the day was deleted. A lesson means
    the lesson took the day. A substitute program (optionally over a date range)
    supplies the day's content instead of the base program.
    """

    __tablename__ = "program_day_replacements"
    __table_args__ = (
        UniqueConstraint("assignment_id", "replaced_date", name="uq_program_day_replacements_assignment_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    assignment_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("program_assignments.id"), nullable=False, index=True)
    replaced_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    lesson_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("events.id", ondelete="SET NULL"), nullable=True)
    substitute_program_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("programs.id"), nullable=True)
    substitute_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    substitute_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    reason: Mapped[str | None] = mapped_column(String, nullable=True)
    coach_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    assignment = relationship("ProgramAssignment", back_populates="replacements")
    substitute_program = relationship("Program", foreign_keys=[substitute_program_id])
    lesson = relationship("Event")
