"""
Common Schema Types
"""

from pydantic import AfterValidator
from typing import Annotated
from datetime import datetime, timezone


def to_naive_utc(value: datetime) -> datetime:
    """Columns store naive UTC; offset-aware input is converted, naive input is taken as UTC"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


UTCDateTime = Annotated[datetime, AfterValidator(to_naive_utc)]
