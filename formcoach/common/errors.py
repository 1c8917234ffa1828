from __future__ import annotations


class FormcoachError(Exception):
    """Base class for errors raised by the trainer."""


class UnknownExerciseError(FormcoachError, KeyError):
    def __init__(self, exercise_id: str):
        super().__init__(exercise_id)
        self.exercise_id = exercise_id

    def __str__(self) -> str:
        return f"unknown exercise: {self.exercise_id!r}"


class SessionError(FormcoachError):
    """A lifecycle command that the current session phase does not allow."""
