from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field

# One data row: header field name -> raw cell string, in header order.
Record = Dict[str, str]


class FileState(str, Enum):
    """
    Status for a candidate file within one poll cycle.

    Normal workflow: Discovered -> LockChecked -> Parsed -> Finalized
    Alternative: -> Skipped (safety check failed) or Failed (parse/publish/rename)
    """

    DISCOVERED = "Discovered"  # Matched the current pattern
    LOCK_CHECKED = "LockChecked"  # Opened for shared read/write without conflict
    PARSED = "Parsed"  # Every row read and every record published
    FINALIZED = "Finalized"  # Renamed with the processed suffix
    SKIPPED = "Skipped"  # Held by another process, retried next cycle
    FAILED = "Failed"  # Left unrenamed, retried in full next cycle


class AgentConfig(BaseModel):
    """Immutable snapshot of the remotely tunable parameters."""

    model_config = ConfigDict(frozen=True)

    interval_millis: int = Field(..., gt=0, description="Sleep between poll cycles")
    file_pattern: str = Field(..., description="Glob matched against file names")
    processed_suffix: str = Field(..., description="Appended to finalized files")

    @property
    def interval_seconds(self) -> float:
        return self.interval_millis / 1000.0

    def to_reported(self) -> Dict[str, object]:
        """Render in the remote channel's property names."""
        return {
            "interval": self.interval_millis,
            "searchPattern": self.file_pattern,
            "renameExtension": self.processed_suffix,
        }


class CandidateFile(BaseModel):
    """A file matched by the scanner; lives for one cycle only."""

    path: str = Field(..., description="Absolute path of the file")
    size: int = Field(default=0, ge=0, description="Size in bytes at discovery")
    last_state: FileState = Field(default=FileState.DISCOVERED)

    @property
    def name(self) -> str:
        return self.path.replace("\\", "/").rsplit("/", 1)[-1]


class TelemetryMessage(BaseModel):
    """
    One record on its way to the telemetry sink.

    `body` is exactly the record; the envelope fields travel as message
    properties so the body stays a plain header -> cell mapping.
    """

    body: Record
    source_file: str
    row_number: int = Field(..., ge=1, description="1-based data row index")
    message_id: str = Field(default_factory=lambda: str(uuid4()))
    created_at: datetime = Field(default_factory=datetime.now)
    content_type: str = "application/json"
    content_encoding: str = "utf-8"

    def properties(self) -> Dict[str, str]:
        return {
            "message-id": self.message_id,
            "source-file": self.source_file,
            "row-number": str(self.row_number),
            "created-at": self.created_at.isoformat(),
        }


class FileOutcome(BaseModel):
    """Result of processing one candidate file."""

    file_name: str
    state: FileState
    rows_published: int = 0
    rows_skipped: int = 0
    renamed_to: Optional[str] = None
    error_message: Optional[str] = None


class CycleReport(BaseModel):
    """Summary of a single poll cycle."""

    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    file_pattern: str = ""
    files: List[FileOutcome] = Field(default_factory=list)
    error_message: Optional[str] = None

    @computed_field
    @property
    def rows_published(self) -> int:
        return sum(outcome.rows_published for outcome in self.files)

    @computed_field
    @property
    def rows_skipped(self) -> int:
        return sum(outcome.rows_skipped for outcome in self.files)

    def count(self, state: FileState) -> int:
        return sum(1 for outcome in self.files if outcome.state == state)


class AgentStatus(BaseModel):
    """Payload for the status endpoint."""

    running: bool
    watch_directory: str
    config: AgentConfig
    cycles_completed: int
    total_rows_published: int
    total_files_finalized: int
    last_cycle: Optional[CycleReport] = None
