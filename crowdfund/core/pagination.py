"""Page/size handling for collection endpoints."""
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict

from crowdfund.core.errors import ValidationError

DEFAULT_PAGE = 1
DEFAULT_SIZE = 10
MAX_SIZE = 100


@dataclass(frozen=True)
class Paging:
    """Paging metadata returned alongside collections."""

    page: int
    size: int
    total_rows: int
    total_pages: int

    @classmethod
    def build(cls, page: int, size: int, total_rows: int) -> "Paging":
        return cls(
            page=page,
            size=size,
            total_rows=total_rows,
            total_pages=int(math.ceil(total_rows / size)) if size else 0,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def validate_page(page: int, size: int) -> None:
    """
    Validate page/size query values.

    Raises:
        ValidationError: If page or size is out of range
    """
    if page < 1:
        raise ValidationError("Invalid page number")
    if size < 1 or size > MAX_SIZE:
        raise ValidationError(f"Invalid size number (1-{MAX_SIZE})")


def offset_for(page: int, size: int) -> int:
    return (page - 1) * size
