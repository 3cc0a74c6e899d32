"""Poll Schemas: creation and ballot payloads.

Invariants:
    - Option count and question length rules live in core.polls (business errors, not schema errors)
    - optionIds has at least one entry
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PollCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    thread_id: UUID = Field(alias="threadId")
    question: str = Field(max_length=500)
    options: list[str] = Field(default_factory=list)
    ends_at: datetime | None = Field(None, alias="endsAt")
    is_multiple_choice: bool = Field(False, alias="isMultipleChoice")
    max_choices: int = Field(1, ge=1, le=6, alias="maxChoices")
    min_level_to_vote: int = Field(0, ge=0, le=5, alias="minLevelToVote")
    show_results_before_vote: bool = Field(True, alias="showResultsBeforeVote")


class PollVoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    option_ids: list[UUID] = Field(alias="optionIds", min_length=1)
