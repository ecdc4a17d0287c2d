"""Unit tests for LaunchProcessor."""
from datetime import datetime, timedelta, timezone

import pytest

from processor.launch_processor import LaunchProcessor, parse_iso_timestamp
from processor.models import ErrorKind, RawLaunch


@pytest.fixture
def processor():
    """Create a LaunchProcessor instance."""
    return LaunchProcessor()


def make_raw(**overrides):
    fields = dict(
        launch_id='f9a3c1d2-0001',
        name='Falcon 9 Block 5 | Starlink Group 10-12',
        net='2026-10-20T14:30:00Z',
        last_updated='2026-10-17T08:05:12Z',
        image_url='https://example.com/f9.jpg',
        provider_name='SpaceX',
        location_name='Cape Canaveral SFS, FL, USA'
    )
    fields.update(overrides)
    return RawLaunch(**fields)


class TestLaunchProcessor:
    """Test cases for LaunchProcessor class."""

    def test_process_valid_launch(self, processor):
        """Test a complete entry becomes a LaunchRecord with UTC timestamps."""
        result = processor.process_launches([make_raw()])

        assert result.errors == []
        assert len(result.records) == 1
        record = result.records[0]
        assert record.launch_id == 'f9a3c1d2-0001'
        assert record.net == datetime(2026, 10, 20, 14, 30, tzinfo=timezone.utc)
        assert record.last_updated == datetime(2026, 10, 17, 8, 5, 12, tzinfo=timezone.utc)
        assert record.provider_name == 'SpaceX'

    def test_missing_required_field_is_reported(self, processor):
        """Test entries without a name are dropped as malformed input."""
        result = processor.process_launches([make_raw(name='  '), make_raw(launch_id='ok')])

        assert [record.launch_id for record in result.records] == ['ok']
        assert len(result.errors) == 1
        assert result.errors[0].kind == ErrorKind.MALFORMED_INPUT
        assert 'name' in result.errors[0].message

    def test_missing_id_is_reported(self, processor):
        """Test entries without an id are dropped."""
        result = processor.process_launches([make_raw(launch_id='')])

        assert result.records == []
        assert 'launch_id' in result.errors[0].message

    def test_invalid_timestamp_is_reported(self, processor):
        """Test entries with unparseable net are dropped."""
        result = processor.process_launches([make_raw(net='next Tuesday')])

        assert result.records == []
        assert result.errors[0].kind == ErrorKind.MALFORMED_INPUT
        assert 'next Tuesday' in result.errors[0].message

    def test_empty_descriptive_fields_are_allowed(self, processor):
        """Test launches without image, provider or location are kept."""
        result = processor.process_launches([
            make_raw(image_url='', provider_name='', location_name='')
        ])

        assert len(result.records) == 1
        assert result.records[0].image_url == ''

    def test_order_and_duplicates_are_kept(self, processor):
        """Test the processor does not reorder or de-duplicate."""
        raw = [make_raw(launch_id='b'), make_raw(launch_id='a'), make_raw(launch_id='b')]

        result = processor.process_launches(raw)

        assert [record.launch_id for record in result.records] == ['b', 'a', 'b']

    def test_process_empty_batch(self, processor):
        """Test an empty batch gives an empty result."""
        result = processor.process_launches([])

        assert result.records == []
        assert result.errors == []


class TestParseIsoTimestamp:
    """Test cases for timestamp parsing."""

    def test_zulu_suffix(self):
        assert parse_iso_timestamp('2026-10-20T14:30:00Z') == datetime(
            2026, 10, 20, 14, 30, tzinfo=timezone.utc
        )

    def test_offset_is_converted_to_utc(self):
        parsed = parse_iso_timestamp('2026-10-20T16:30:00+02:00')

        assert parsed == datetime(2026, 10, 20, 14, 30, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_naive_is_utc(self):
        assert parse_iso_timestamp('2026-10-20T14:30:00') == datetime(
            2026, 10, 20, 14, 30, tzinfo=timezone.utc
        )

    def test_invalid(self):
        assert parse_iso_timestamp('not a date') is None
