"""HTML mail notifier for launch changes, delivered through Amazon SES."""
import html
import logging
from datetime import date, datetime, timezone
from typing import List, Optional, Union

import boto3
from botocore.exceptions import ClientError

from processor.models import LaunchStatus, MailConfig, StoredLaunch

logger = logging.getLogger(__name__)

DATE_PLACEHOLDER = '{{DATE}}'


def render_html(launches: List[StoredLaunch]) -> str:
    """
    Render launches as an HTML table.

    Every cell of a cancelled launch is struck through.

    Args:
        launches: Launches returned by the change query

    Returns:
        HTML body
    """
    lines = [
        '<h2>Rocket Launch Updates</h2>',
        '<table border="1" cellpadding="4" cellspacing="0">',
        '<tr><th>Name</th><th>NET</th><th>Provider</th><th>Location</th></tr>',
    ]

    for launch in launches:
        cells = [
            html.escape(launch.name),
            launch.net.astimezone(timezone.utc).strftime('%Y-%m-%d %H:%M') + ' UTC',
            html.escape(launch.provider_name),
            html.escape(launch.location_name),
        ]
        if launch.status == LaunchStatus.CANCELLED:
            cells = [f'<s>{cell}</s>' for cell in cells]

        lines.append('<tr>')
        lines.extend(f'  <td>{cell}</td>' for cell in cells)
        lines.append('</tr>')

    lines.append('</table>')
    return '\n'.join(lines) + '\n'


def build_subject(template: str, today: Union[date, datetime]) -> str:
    """Fill the {{DATE}} placeholder with today's date as YYYY-MM-DD."""
    if isinstance(today, datetime):
        if today.tzinfo is None:
            today = today.replace(tzinfo=timezone.utc)
        today = today.astimezone(timezone.utc).date()
    return template.replace(DATE_PLACEHOLDER, today.strftime('%Y-%m-%d'))


class MailNotifier:
    """Sends the daily launch change mail."""

    def __init__(self, mail_config: MailConfig, ses_client=None):
        """
        Initialize the notifier.

        Args:
            mail_config: Sender, recipients, subject template and SES region
            ses_client: Optional pre-built SES client
        """
        self.config = mail_config
        if ses_client is None:
            ses_client = boto3.client('ses', region_name=mail_config.region)
        self.ses = ses_client

    def send(self, launches: List[StoredLaunch], today: Union[date, datetime]) -> str:
        """
        Send one HTML mail listing launches to every recipient.

        Args:
            launches: Launches to report
            today: Date used in the subject

        Returns:
            SES message id

        Raises:
            ClientError: If SES rejects the message
        """
        subject = build_subject(self.config.subject, today)
        body = render_html(launches)

        logger.info(
            f"Sending mail for {len(launches)} launches to "
            f"{len(self.config.recipients)} recipients"
        )
        try:
            response = self.ses.send_email(
                Source=self.config.sender,
                Destination={'ToAddresses': list(self.config.recipients)},
                Message={
                    'Subject': {'Data': subject, 'Charset': 'UTF-8'},
                    'Body': {'Html': {'Data': body, 'Charset': 'UTF-8'}}
                }
            )
        except ClientError as e:
            logger.error(f"Error sending launch mail: {e}")
            raise

        message_id = response['MessageId']
        logger.info(f"Mail sent: {message_id}")
        return message_id
