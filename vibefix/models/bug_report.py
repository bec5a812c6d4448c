"""
Bug Report Model
================
Pydantic model for the structured report returned by the model.
This is the contract between the response decoder and all downstream consumers.

Fields:
    bug_summary     - one sentence description of the bug
    user_sentiment  - free-text label (documented as Frustrated/Confused/Helpful)
    file_to_edit    - path of the file the fix targets
    explanation     - prose explanation, or a direct reply to refinement feedback
    code_patch      - the corrected code

All five fields are required strings. StrictStr rejects null and non-string
values instead of coercing them, so a report is either complete or rejected.
bug_summary must also be non-empty; the other fields may be empty strings.
"""
from pydantic import BaseModel, ConfigDict, Field, StrictStr


class BugReport(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    bug_summary: StrictStr = Field(min_length=1)
    user_sentiment: StrictStr
    file_to_edit: StrictStr
    explanation: StrictStr
    code_patch: StrictStr

    def to_json(self) -> str:
        """Compact JSON form used when a report is replayed into a prompt."""
        return self.model_dump_json()
