"""
CSV export and import parsing for user records.

Best-effort format: one header row, the name column always double-quoted,
other columns written as-is.
"""
import csv
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Union

from userstore.models.user import User

EXPORT_HEADERS = ["ID", "Name", "Email", "Role", "Created At", "Last Login", "Active", "Total Orders", "Total Spent"]
DELIMITER = ","


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _number(value) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def format_users_csv(users: Iterable[User]) -> str:
    """Render users as CSV text with a fixed header row"""
    lines = [DELIMITER.join(EXPORT_HEADERS)]
    for user in users:
        stats = user.stats
        lines.append(DELIMITER.join([
            user.id,
            _quote(user.name),
            user.email,
            user.role.value,
            user.created_at.isoformat(),
            user.last_login.isoformat() if user.last_login else "",
            "true" if user.is_active else "false",
            str(stats.total_orders if stats else 0),
            _number(stats.total_spent if stats else 0),
        ]))
    return "\n".join(lines)


@dataclass
class ImportRow:
    """A data line that has the required fields"""
    line_number: int
    name: str
    email: str
    role: Optional[str] = None


@dataclass
class ImportLineError:
    """A data line that was rejected while parsing"""
    line_number: int
    message: str

    def __str__(self):
        return f"Line {self.line_number}: {self.message}"


def parse_import_lines(csv_data: str) -> Iterator[Union[ImportRow, ImportLineError]]:
    """Yield one row or error per non-blank data line; the first line is the header"""
    lines = csv_data.splitlines()
    for index, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        try:
            values: List[str] = next(csv.reader([line], delimiter=DELIMITER))
        except csv.Error as e:
            yield ImportLineError(index, f"Unreadable line ({e})")
            continue

        if len(values) < 3:
            yield ImportLineError(index, "Missing required fields")
            continue

        name = values[1].replace('"', "").strip()
        email = values[2].replace('"', "").strip()
        if not email or not name:
            yield ImportLineError(index, "Missing required fields")
            continue

        role = values[3].replace('"', "").strip() if len(values) > 3 else ""
        yield ImportRow(line_number=index, name=name, email=email, role=role or None)
