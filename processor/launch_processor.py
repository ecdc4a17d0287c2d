"""Launch processor for validating and normalizing fetched launches."""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from processor.models import (
    ErrorKind,
    LaunchRecord,
    PipelineError,
    ProcessResult,
    RawLaunch,
)

logger = logging.getLogger(__name__)


class LaunchProcessor:
    """Processor for validating and normalizing launch data."""

    REQUIRED_FIELDS = ('launch_id', 'name', 'net', 'last_updated')

    def process_launches(self, raw_launches: List[RawLaunch]) -> ProcessResult:
        """
        Validate raw launches and convert them to LaunchRecord objects.

        Invalid entries are dropped and reported as MALFORMED_INPUT errors.
        Upstream order is kept and duplicates are passed through.

        Args:
            raw_launches: List of RawLaunch objects from the client

        Returns:
            ProcessResult with valid records and one error per dropped entry
        """
        records = []
        errors = []

        for raw in raw_launches:
            error = self._validate_required_fields(raw)
            if error is None:
                record = self._to_record(raw)
                if record is None:
                    error = (
                        f"Launch '{raw.launch_id}' has an invalid timestamp: "
                        f"net={raw.net!r}, last_updated={raw.last_updated!r}"
                    )
                else:
                    records.append(record)
                    continue

            logger.warning(error)
            errors.append(PipelineError(kind=ErrorKind.MALFORMED_INPUT, message=error))

        logger.info(
            f"Processed {len(records)} valid launches out of "
            f"{len(raw_launches)} total launches"
        )
        return ProcessResult(records=records, errors=errors)

    def _validate_required_fields(self, raw: RawLaunch) -> Optional[str]:
        """
        Check that required fields are present and non-blank.

        Returns:
            Error message, or None if valid
        """
        for field_name in self.REQUIRED_FIELDS:
            value = getattr(raw, field_name)
            if not value or not value.strip():
                label = raw.launch_id or raw.name or '<unknown>'
                return f"Launch '{label}' missing required field: {field_name}"
        return None

    def _to_record(self, raw: RawLaunch) -> Optional[LaunchRecord]:
        net = parse_iso_timestamp(raw.net)
        last_updated = parse_iso_timestamp(raw.last_updated)
        if net is None or last_updated is None:
            return None

        return LaunchRecord(
            launch_id=raw.launch_id.strip(),
            name=raw.name.strip(),
            net=net,
            last_updated=last_updated,
            image_url=raw.image_url,
            provider_name=raw.provider_name,
            location_name=raw.location_name
        )


def parse_iso_timestamp(value: str) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp into an aware UTC datetime.

    A trailing 'Z' is accepted and naive values are taken to be UTC.

    Args:
        value: Timestamp string such as '2026-10-20T14:30:00Z'

    Returns:
        UTC datetime or None if parsing fails
    """
    text = value.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
