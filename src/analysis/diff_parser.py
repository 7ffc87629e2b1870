"""Parser for GitHub diff patches."""

import re
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from src.github.models import FileChange

logger = logging.getLogger(__name__)

# Regex to match hunk headers like @@ -1,5 +1,7 @@
HUNK_HEADER_PATTERN = re.compile(
    r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$"
)


@dataclass
class HunkLine:
    """Represents a single line in a diff hunk."""
    line_number: int
    content: str
    change_type: str  # 'added', 'removed', 'context'
    position: int = 0

    @property
    def is_added(self) -> bool:
        return self.change_type == "added"


@dataclass
class DiffHunk:
    """Represents a hunk in a diff."""
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: list[HunkLine] = field(default_factory=list)
    header: str = ""


@dataclass
class ParsedDiff:
    """Parsed diff for a file."""
    filename: str
    hunks: list[DiffHunk] = field(default_factory=list)
    position_count: int = 0

    def line_at(self, position: int) -> Optional[HunkLine]:
        """Find the diff line a review comment position points at."""
        for hunk in self.hunks:
            for line in hunk.lines:
                if line.position == position:
                    return line
        return None

    def has_position(self, position: int) -> bool:
        return 1 <= position <= self.position_count


class DiffParser:
    """Parser for unified diff format.

    Besides line numbers, every parsed line records its review comment
    position: the line right below the first ``@@`` header is position 1 and
    the count keeps running through later hunk headers until the file ends.
    """

    def parse_file_diff(self, file_change: "FileChange") -> Optional[ParsedDiff]:
        """
        Parse a file's patch into structured hunks.

        Args:
            file_change: FileChange object containing the patch.

        Returns:
            ParsedDiff object or None if no patch.
        """
        if not file_change.patch:
            return None

        return self.parse_patch(file_change.filename, file_change.patch)

    def parse_patch(self, filename: str, patch: str) -> ParsedDiff:
        """
        Parse a unified diff patch string.

        Args:
            filename: Name of the file.
            patch: Unified diff patch string.

        Returns:
            ParsedDiff object with parsed hunks and the number of positions.
        """
        parsed = ParsedDiff(filename=filename)
        lines = patch.rstrip("\n").split("\n")

        current_hunk: Optional[DiffHunk] = None
        new_line_num = 0
        position = 0

        for line in lines:
            header_match = HUNK_HEADER_PATTERN.match(line)
            if header_match:
                if current_hunk:
                    parsed.hunks.append(current_hunk)
                    # Later hunk headers take up a position of their own
                    position += 1

                new_start = int(header_match.group(3))
                current_hunk = DiffHunk(
                    old_start=int(header_match.group(1)),
                    old_count=int(header_match.group(2) or 1),
                    new_start=new_start,
                    new_count=int(header_match.group(4) or 1),
                    header=header_match.group(5).strip(),
                )
                new_line_num = new_start
                continue

            # Anything before the first header is not part of the diff body
            if current_hunk is None:
                continue

            position += 1
            if line.startswith("+"):
                current_hunk.lines.append(HunkLine(
                    line_number=new_line_num,
                    content=line[1:],
                    change_type="added",
                    position=position,
                ))
                new_line_num += 1
            elif line.startswith("-"):
                # Removed lines keep the current new-file line for reference
                current_hunk.lines.append(HunkLine(
                    line_number=new_line_num,
                    content=line[1:],
                    change_type="removed",
                    position=position,
                ))
            elif line.startswith("\\"):
                # "\ No newline at end of file"
                continue
            else:
                content = line[1:] if line.startswith(" ") else line
                current_hunk.lines.append(HunkLine(
                    line_number=new_line_num,
                    content=content,
                    change_type="context",
                    position=position,
                ))
                new_line_num += 1

        if current_hunk:
            parsed.hunks.append(current_hunk)
        parsed.position_count = position

        logger.debug(f"Parsed {len(parsed.hunks)} hunks and {position} positions for {filename}")
        return parsed

