"""Stage definitions and outcomes of the publish pipeline."""

from dataclasses import dataclass, field
from typing import List, Tuple, Union

VALIDATE = "validate"
GENERATE_SEO = "generate-seo"
GENERATE_FILES = "generate-files"
REVIEW = "review"
COMMIT = "commit"
WAIT_FOR_LIVE = "wait-for-live"

STAGES: Tuple[Tuple[str, str], ...] = (
    (VALIDATE, "Validation"),
    (GENERATE_SEO, "SEO Generation"),
    (GENERATE_FILES, "File Generation"),
    (REVIEW, "Code Review"),
    (COMMIT, "Git Operations"),
    (WAIT_FOR_LIVE, "Live Deployment"),
)


@dataclass(frozen=True)
class Completed:
    message: str = ""


@dataclass(frozen=True)
class Skipped:
    reason: str


@dataclass(frozen=True)
class Failed:
    """A stage failure. Fatal failures abort the run, others become warnings."""

    error: str
    fatal: bool = True
    errors: List[str] = field(default_factory=list)

    @property
    def all_errors(self) -> List[str]:
        return list(self.errors) or [self.error]


StageOutcome = Union[Completed, Skipped, Failed]
