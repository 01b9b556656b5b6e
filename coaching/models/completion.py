import uuid
from datetime import date, datetime, timezone
from sqlalchemy import String, ForeignKey, Date, DateTime, Boolean, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from coaching.database import Base

# Sentinels stored in ExerciseCompletion.program_drill_id when no program drill is involved.
STANDALONE_ROUTINE = "standalone-routine"
STANDALONE_DRILL = "standalone-drill"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DrillCompletion(Base):
    """Legacy per-drill completion, not scoped to an assignment or a date."""

    __tablename__ = "drill_completions"
    __table_args__ = (
        UniqueConstraint("drill_id", "client_id", name="uq_drill_completions_drill_client"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    drill_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    client_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("clients.id"), nullable=False, index=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)


class ProgramDrillCompletion(Base):
    __tablename__ = "program_drill_completions"
    __table_args__ = (
        UniqueConstraint("drill_id", "program_assignment_id", name="uq_program_drill_completions_drill_assignment"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    drill_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("program_drills.id", ondelete="CASCADE"), nullable=False)
    program_assignment_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("program_assignments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    client_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("clients.id"), nullable=False, index=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    assignment = relationship("ProgramAssignment")


class ExerciseCompletion(Base):
    """Date-scoped completion of a drill or exercise.

    exercise_id and program_drill_id are free-form strings: exercise_id may hold a
    drill id, and program_drill_id may hold one of the standalone sentinels.
    """

    __tablename__ = "exercise_completions"
    __table_args__ = (
        UniqueConstraint(
            "client_id", "exercise_id", "program_drill_id", "date",
            name="uq_exercise_completions_client_exercise_drill_date",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("clients.id"), nullable=False, index=True)
    exercise_id: Mapped[str] = mapped_column(String, nullable=False)
    program_drill_id: Mapped[str | None] = mapped_column(String, nullable=True)
    completion_date: Mapped[date | None] = mapped_column("date", Date, nullable=True, index=True)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class RoutineExerciseCompletion(Base):
    __tablename__ = "routine_exercise_completions"
    __table_args__ = (
        UniqueConstraint(
            "routine_assignment_id", "exercise_id", "client_id",
            name="uq_routine_exercise_completions_assignment_exercise_client",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    routine_assignment_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("routine_assignments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    exercise_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("routine_exercises.id", ondelete="CASCADE"), nullable=False)
    client_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("clients.id"), nullable=False, index=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
