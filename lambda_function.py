"""AWS Lambda handler for the daily launch change mail."""
import json
import logging
import os
import time
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from notifier.mail_notifier import MailNotifier
from processor.launch_processor import LaunchProcessor
from processor.models import AppConfig, ErrorKind, MailConfig, PipelineError
from scraper.launch_library import LaunchLibraryClient
from storage.launch_store import open_store, todays_changes
from storage.reconciler import reconcile

DEFAULT_SUBJECT = 'Rocket Launch Updates {{DATE}}'


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    # Attributes every LogRecord carries; anything else came in through extra=
    RESERVED_ATTRS = frozenset(
        vars(logging.LogRecord('', 0, '', 0, '', None, None))
    ) | {'message', 'asctime'}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in record.__dict__.items():
            if key not in self.RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def load_config(
    environ: Mapping[str, str]
) -> Tuple[Optional[AppConfig], Optional[PipelineError]]:
    """
    Build the application configuration from environment variables.

    Args:
        environ: Environment mapping, usually os.environ

    Returns:
        (config, None) on success, (None, error) when a value is missing
        or invalid
    """
    sender = environ.get('MAIL_FROM', '').strip()
    recipients = [
        address.strip()
        for address in environ.get('MAIL_RECIPIENTS', '').split(',')
        if address.strip()
    ]

    if not sender:
        return None, PipelineError(ErrorKind.CONFIG, 'MAIL_FROM is not set')
    if not recipients:
        return None, PipelineError(ErrorKind.CONFIG, 'MAIL_RECIPIENTS is not set')

    numbers = {}
    for name, default in (('DAYS_AHEAD', '7'), ('TIMEOUT_SECONDS', '30'), ('FETCH_LIMIT', '100')):
        raw = environ.get(name, default)
        try:
            numbers[name] = int(raw)
        except ValueError:
            return None, PipelineError(
                ErrorKind.CONFIG, f'{name} must be an integer, got {raw!r}'
            )
        if numbers[name] <= 0:
            return None, PipelineError(
                ErrorKind.CONFIG, f'{name} must be positive, got {raw!r}'
            )

    config = AppConfig(
        db_path=environ.get('DB_PATH', 'launches.db'),
        days_ahead=numbers['DAYS_AHEAD'],
        timeout_seconds=numbers['TIMEOUT_SECONDS'],
        fetch_limit=numbers['FETCH_LIMIT'],
        mail=MailConfig(
            sender=sender,
            recipients=recipients,
            subject=environ.get('MAIL_SUBJECT', DEFAULT_SUBJECT),
            region=environ.get('SES_REGION') or None
        )
    )
    return config, None


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {'statusCode': status_code, 'body': json.dumps(body)}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler: fetch, reconcile, query today's changes, notify.

    Args:
        event: EventBridge event payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and summary statistics
    """
    setup_logging(os.environ.get('LOG_LEVEL', 'INFO'))
    logger = logging.getLogger(__name__)

    start_time = time.time()
    now = datetime.now(timezone.utc)

    config, config_error = load_config(os.environ)
    if config_error:
        logger.error(f"Invalid configuration: {config_error.message}")
        return _response(500, {
            'message': 'Invalid configuration',
            'error': config_error.message,
            'error_type': config_error.kind.value
        })

    logger.info(
        "Lambda execution started",
        extra={
            'db_path': config.db_path,
            'days_ahead': config.days_ahead,
            'timeout_seconds': config.timeout_seconds
        }
    )

    client = LaunchLibraryClient(
        timeout=config.timeout_seconds, limit=config.fetch_limit
    )
    processor = LaunchProcessor()

    # Fetch failures return before reconciling; an empty batch cancels everything.
    try:
        logger.info("Fetching launches from Launch Library")
        raw_launches = client.fetch_launches(now, days_ahead=config.days_ahead)
    except Exception as e:
        logger.error(
            f"Failed to fetch launches: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _response(500, {
            'message': 'Failed to fetch launches',
            'error': str(e),
            'error_type': type(e).__name__,
            'duration_seconds': round(time.time() - start_time, 2)
        })

    logger.info("Processing and validating launches")
    processed = processor.process_launches(raw_launches)

    conn = None
    try:
        conn = open_store(config.db_path)

        logger.info("Reconciling launches with local store")
        sync_result = reconcile(conn, processed.records, now)
        if sync_result.error:
            logger.error(f"Reconciliation failed: {sync_result.error.message}")
            return _response(500, {
                'message': 'Failed to reconcile launches',
                'error': sync_result.error.message,
                'error_type': sync_result.error.kind.value,
                'note': 'Local store left unchanged',
                'duration_seconds': round(time.time() - start_time, 2)
            })

        changes = todays_changes(conn, now)
        notified = 0
        if not changes:
            logger.info("No new or changed launches today. No mail sent.")
        else:
            notifier = MailNotifier(config.mail)
            notifier.send(changes, now)
            notified = len(changes)

    except Exception as e:
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _response(500, {
            'message': 'Launch sync failed',
            'error': str(e),
            'error_type': type(e).__name__,
            'duration_seconds': round(time.time() - start_time, 2)
        })
    finally:
        if conn is not None:
            conn.close()

    duration = time.time() - start_time
    logger.info(
        "Lambda execution completed successfully",
        extra={
            'duration_seconds': round(duration, 2),
            'launches_added': sync_result.added,
            'launches_updated': sync_result.updated,
            'launches_cancelled': sync_result.cancelled,
            'launches_expired': sync_result.expired
        }
    )

    return _response(200, {
        'message': (
            'Sync completed successfully' if notified
            else 'No new or changed launches today'
        ),
        'statistics': {
            'raw_launches_fetched': len(raw_launches),
            'valid_launches_processed': len(processed.records),
            'malformed_launches': len(processed.errors),
            'launches_added': sync_result.added,
            'launches_updated': sync_result.updated,
            'launches_cancelled': sync_result.cancelled,
            'launches_pruned': sync_result.pruned,
            'launches_expired': sync_result.expired,
            'launches_unchanged': sync_result.skipped,
            'launches_notified': notified,
            'duration_seconds': round(duration, 2)
        },
        'errors': [error.message for error in processed.errors]
    })
