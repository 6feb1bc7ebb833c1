from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class Category(str, Enum):
    WORK = "Work"
    PERSONAL = "Personal"
    URGENT = "Urgent"
    LEARNING = "Learning"
    HEALTH = "Health"

    @classmethod
    def from_label(cls, label: Optional[str]) -> "Category":
        """Case-insensitive label lookup. Anything unknown becomes Personal."""
        if label:
            wanted = label.strip().lower()
            for category in cls:
                if category.value.lower() == wanted:
                    return category
        return cls.PERSONAL


class TaskFilter(str, Enum):
    ALL = "ALL"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class Subtask(BaseModel):
    id: str = Field(min_length=1)
    text: str = Field(min_length=1)
    completed: bool = False


class Task(BaseModel):
    id: str = Field(min_length=1)
    text: str = Field(min_length=1)
    completed: bool = False
    category: Category = Category.PERSONAL
    created_at: str  # ISO format datetime string
    subtasks: list[Subtask] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_subtask_ids(self) -> "Task":
        ids = [s.id for s in self.subtasks]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate subtask ids in task {self.id}")
        return self


class TaskCreate(BaseModel):
    text: str
    category: Category = Category.PERSONAL


class CategorizeRequest(BaseModel):
    text: str


class CategorizeResponse(BaseModel):
    category: Category


class AIResult(BaseModel):
    tasks: list[Task]
    error: Optional[str] = None  # Transient status for the control that triggered the call


class Stats(BaseModel):
    total: int
    active: int
    completed: int
    completion_percent: int
    categories: dict[str, int]
