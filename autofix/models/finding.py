"""
Finding Model
=============
Normalized detector finding, the contract between the producer adapter
and the issue store.

Fields:
    title                — non-empty, human-readable summary
    description          — citation-stripped free text
    source_url           — page where the problem was seen
    manual_instructions  — optional hints passed verbatim to the remediation prompt
"""
from typing import Optional, Tuple

from pydantic import BaseModel

from autofix.models.issue import IssueDraft


class Finding(BaseModel):
    title: str
    description: Optional[str] = None
    source_url: Optional[str] = None
    manual_instructions: Optional[str] = None

    @property
    def dedup_key(self) -> Tuple[str, Optional[str]]:
        return (self.title, self.source_url)

    def to_draft(self) -> IssueDraft:
        return IssueDraft(
            title=self.title,
            description=self.description,
            source_url=self.source_url,
            manual_instructions=self.manual_instructions,
        )
