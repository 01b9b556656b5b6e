"""Typed records produced by the calendar projection pipeline.

Expanded items are an explicit tagged union instead of composite-id strings:
each variant carries the back-references its completion lookup needs, and the
client-facing ``id`` is derived from them.
"""
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal, Union


@dataclass(frozen=True)
class DayCoordinate:
    week_number: int
    day_number: int


@dataclass(frozen=True)
class ExerciseFields:
    title: str
    description: str | None = None
    sets: int | None = None
    reps: int | None = None
    tempo: str | None = None
    duration: str | None = None
    notes: str | None = None
    type: str | None = None
    video_url: str | None = None
    video_id: str | None = None
    video_title: str | None = None
    video_thumbnail: str | None = None
    superset_id: str | None = None
    superset_order: int | None = None
    superset_description: str | None = None
    superset_instructions: str | None = None
    superset_notes: str | None = None

    @classmethod
    def from_row(cls, row: Any) -> "ExerciseFields":
        """Copy the shared exercise columns off a ProgramDrill or RoutineExercise."""
        return cls(
            title=row.title,
            description=row.description,
            sets=row.sets,
            reps=row.reps,
            tempo=row.tempo,
            duration=row.duration,
            notes=row.notes,
            type=row.type,
            video_url=row.video_url,
            video_id=row.video_id,
            video_title=row.video_title,
            video_thumbnail=row.video_thumbnail,
            superset_id=row.superset_id,
            superset_order=row.superset_order,
            superset_description=row.superset_description,
            superset_instructions=row.superset_instructions,
            superset_notes=row.superset_notes,
        )


@dataclass(frozen=True)
class CoachInstructions:
    what_to_do: str = ""
    how_to_do_it: str = ""
    key_points: tuple[str, ...] = ()
    common_mistakes: tuple[str, ...] = ()
    easier: str = ""
    harder: str = ""
    equipment: str = ""
    setup: str = ""


@dataclass(frozen=True)
class ProgramDrillItem:
    drill_id: uuid.UUID
    fields: ExerciseFields
    coach_instructions: CoachInstructions | None = None
    kind: Literal["drill"] = "drill"

    @property
    def id(self) -> str:
        return str(self.drill_id)


@dataclass(frozen=True)
class RoutineExerciseItem:
    """An exercise reached by expanding a routine drill inside a program day."""

    exercise_id: uuid.UUID
    routine_id: uuid.UUID
    original_drill_id: uuid.UUID
    fields: ExerciseFields
    kind: Literal["routine_exercise"] = "routine_exercise"

    @property
    def id(self) -> str:
        return f"{self.original_drill_id}-routine-{self.exercise_id}"


@dataclass(frozen=True)
class StandaloneRoutineItem:
    """An exercise of a routine assigned directly to the client."""

    exercise_id: uuid.UUID
    routine_id: uuid.UUID
    routine_assignment_id: uuid.UUID
    fields: ExerciseFields
    kind: Literal["standalone_routine"] = "standalone_routine"

    @property
    def id(self) -> str:
        return f"{self.routine_assignment_id}-{self.exercise_id}"


ExpandedItem = Union[ProgramDrillItem, RoutineExerciseItem, StandaloneRoutineItem]


@dataclass(frozen=True)
class ResolvedItem:
    item: ExpandedItem
    completed: bool

    def to_dict(self) -> dict[str, Any]:
        item = self.item
        data: dict[str, Any] = {
            "id": item.id,
            "kind": item.kind,
            "completed": self.completed,
            **{name: getattr(item.fields, name) for name in ExerciseFields.__dataclass_fields__},
            "routine_id": None,
            "original_drill_id": None,
            "routine_assignment_id": None,
            "coach_instructions": None,
        }
        if isinstance(item, ProgramDrillItem):
            if item.coach_instructions is not None:
                instructions = item.coach_instructions
                data["coach_instructions"] = {
                    "what_to_do": instructions.what_to_do,
                    "how_to_do_it": instructions.how_to_do_it,
                    "key_points": list(instructions.key_points),
                    "common_mistakes": list(instructions.common_mistakes),
                    "easier": instructions.easier,
                    "harder": instructions.harder,
                    "equipment": instructions.equipment,
                    "setup": instructions.setup,
                }
        elif isinstance(item, RoutineExerciseItem):
            data["routine_id"] = item.routine_id
            data["original_drill_id"] = item.original_drill_id
        else:
            data["routine_id"] = item.routine_id
            data["routine_assignment_id"] = item.routine_assignment_id
        return data


def estimate_minutes(items: list[ResolvedItem]) -> int:
    # Rough estimate: two minutes per set.
    return sum((resolved.item.fields.sets or 0) * 2 for resolved in items)


@dataclass
class ProgramDayEntry:
    """One assignment's contribution to a calendar date."""

    kind: Literal["program", "routine"]
    assignment_id: uuid.UUID
    title: str
    is_rest_day: bool
    items: list[ResolvedItem] = field(default_factory=list)
    description: str | None = None
    program_id: uuid.UUID | None = None
    routine_id: uuid.UUID | None = None
    week_number: int | None = None
    day_number: int | None = None
    warmup_title: str | None = None
    warmup_description: str | None = None
    substituted: bool = False
    orphaned_items: int = 0

    @property
    def total_drills(self) -> int:
        return len(self.items)

    @property
    def completed_drills(self) -> int:
        return sum(1 for resolved in self.items if resolved.completed)

    @property
    def expected_time(self) -> int:
        return estimate_minutes(self.items)

    @property
    def is_complete(self) -> bool:
        return not self.is_rest_day and bool(self.items) and self.completed_drills == self.total_drills

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "assignment_id": self.assignment_id,
            "program_id": self.program_id,
            "routine_id": self.routine_id,
            "title": self.title,
            "description": self.description,
            "week_number": self.week_number,
            "day_number": self.day_number,
            "warmup_title": self.warmup_title,
            "warmup_description": self.warmup_description,
            "is_rest_day": self.is_rest_day,
            "substituted": self.substituted,
            "items": [resolved.to_dict() for resolved in self.items],
            "total_drills": self.total_drills,
            "completed_drills": self.completed_drills,
            "expected_time": self.expected_time,
            "orphaned_items": self.orphaned_items,
        }


@dataclass(frozen=True)
class VideoAssignmentEntry:
    id: uuid.UUID
    title: str
    description: str | None
    video_url: str | None
    thumbnail_url: str | None
    due_date: date | None
    completed: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "video_url": self.video_url,
            "thumbnail_url": self.thumbnail_url,
            "due_date": self.due_date,
            "completed": self.completed,
        }


@dataclass
class DayProjection:
    """Everything projected onto one calendar date, with summed day-level totals."""

    date: date
    programs: list[ProgramDayEntry] = field(default_factory=list)
    video_assignments: list[VideoAssignmentEntry] = field(default_factory=list)
    is_rest_day: bool = False
    total_drills: int = 0
    completed_drills: int = 0
    expected_time: int = 0
    total_assignments: int = 0
    completed_assignments: int = 0

    def add_entry(self, entry: ProgramDayEntry) -> None:
        # A date is a rest day only when every contributing entry is one.
        if self.programs:
            self.is_rest_day = self.is_rest_day and entry.is_rest_day
        else:
            self.is_rest_day = entry.is_rest_day
        self.programs.append(entry)
        self.total_drills += entry.total_drills
        self.completed_drills += entry.completed_drills
        self.expected_time += entry.expected_time
        if not entry.is_rest_day:
            self.total_assignments += 1
            if entry.is_complete:
                self.completed_assignments += 1

    def add_video_assignment(self, video: VideoAssignmentEntry) -> None:
        self.video_assignments.append(video)

    @property
    def orphaned_items(self) -> int:
        return sum(entry.orphaned_items for entry in self.programs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "programs": [entry.to_dict() for entry in self.programs],
            "video_assignments": [video.to_dict() for video in self.video_assignments],
            "is_rest_day": self.is_rest_day,
            "total_drills": self.total_drills,
            "completed_drills": self.completed_drills,
            "expected_time": self.expected_time,
            "total_assignments": self.total_assignments,
            "completed_assignments": self.completed_assignments,
            "orphaned_items": self.orphaned_items,
        }


@dataclass(frozen=True)
class LightDaySummary:
    date: date
    is_rest_day: bool = True
    total_drills: int = 0
    completed_drills: int = 0
    expected_time: int = 0
    program_count: int = 0
    has_video_assignments: bool = False

    @classmethod
    def from_projection(cls, projection: DayProjection) -> "LightDaySummary":
        return cls(
            date=projection.date,
            is_rest_day=projection.is_rest_day,
            total_drills=projection.total_drills,
            completed_drills=projection.completed_drills,
            expected_time=projection.expected_time,
            program_count=len(projection.programs),
            has_video_assignments=bool(projection.video_assignments),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "is_rest_day": self.is_rest_day,
            "total_drills": self.total_drills,
            "completed_drills": self.completed_drills,
            "expected_time": self.expected_time,
            "program_count": self.program_count,
            "has_video_assignments": self.has_video_assignments,
        }
