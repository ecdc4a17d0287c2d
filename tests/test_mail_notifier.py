"""Unit tests for the launch mail notifier."""
from datetime import date, datetime, timezone

import boto3
import pytest
from botocore.exceptions import ClientError
from bs4 import BeautifulSoup
from moto import mock_aws

from notifier.mail_notifier import MailNotifier, build_subject, render_html
from processor.models import LaunchStatus, MailConfig, StoredLaunch

SENDER = 'launches@example.com'


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never touches a real account."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def ses_client(aws_credentials):
    """Create a mock SES client with a verified sender."""
    with mock_aws():
        client = boto3.client('ses', region_name='us-east-1')
        client.verify_email_identity(EmailAddress=SENDER)
        yield client


@pytest.fixture
def mail_config():
    return MailConfig(
        sender=SENDER,
        recipients=['ops@example.com', 'fan@example.com'],
        subject='Rocket Launch Updates {{DATE}}',
        region='us-east-1'
    )


def make_launch(launch_id, name, status=LaunchStatus.UPCOMING):
    return StoredLaunch(
        launch_id=launch_id,
        name=name,
        net=datetime(2026, 10, 20, 14, 30, tzinfo=timezone.utc),
        last_updated=datetime(2026, 10, 17, 8, 0, tzinfo=timezone.utc),
        image_url='',
        provider_name='SpaceX',
        location_name='Cape Canaveral SFS, FL, USA',
        status=status,
        changed_at=datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)
    )


def test_render_html_table_rows():
    """Test each launch renders one row with formatted NET."""
    body = render_html([make_launch('a', 'Starlink 10-12'), make_launch('b', 'Transporter-15')])
    soup = BeautifulSoup(body, 'html.parser')

    assert soup.h2.get_text() == 'Rocket Launch Updates'
    rows = soup.find_all('tr')
    assert [th.get_text() for th in rows[0].find_all('th')] == ['Name', 'NET', 'Provider', 'Location']
    assert len(rows) == 3
    assert [td.get_text() for td in rows[1].find_all('td')] == [
        'Starlink 10-12', '2026-10-20 14:30 UTC', 'SpaceX', 'Cape Canaveral SFS, FL, USA'
    ]
    assert rows[1].find('s') is None


def test_render_html_strikes_through_cancelled():
    """Test every cell of a cancelled launch is wrapped in <s>."""
    body = render_html([make_launch('a', 'Scrubbed', status=LaunchStatus.CANCELLED)])
    soup = BeautifulSoup(body, 'html.parser')

    cells = soup.find_all('tr')[1].find_all('td')
    assert len(cells) == 4
    assert all(cell.s is not None for cell in cells)


def test_render_html_escapes_text():
    """Test launch names cannot inject markup."""
    body = render_html([make_launch('a', '<b>Falcon</b> & Dragon')])

    assert '<b>Falcon</b>' not in body
    assert '&lt;b&gt;Falcon&lt;/b&gt; &amp; Dragon' in body


def test_render_html_empty():
    """Test an empty list renders only the header row."""
    soup = BeautifulSoup(render_html([]), 'html.parser')

    assert len(soup.find_all('tr')) == 1


def test_build_subject_replaces_date():
    assert build_subject('Launches {{DATE}}', date(2026, 10, 18)) == 'Launches 2026-10-18'
    assert build_subject('No placeholder', date(2026, 10, 18)) == 'No placeholder'


def test_build_subject_uses_utc_date():
    late_west = datetime(2026, 10, 17, 22, 0, tzinfo=timezone.utc).astimezone()
    assert build_subject('{{DATE}}', late_west) == '2026-10-17'


def test_send_delivers_mail(ses_client, mail_config):
    """Test send calls SES once and returns the message id."""
    notifier = MailNotifier(mail_config, ses_client=ses_client)

    message_id = notifier.send([make_launch('a', 'Starlink 10-12')], date(2026, 10, 18))

    assert message_id
    assert ses_client.get_send_quota()['SentLast24Hours'] == 1


def test_send_builds_client_from_region(aws_credentials, mail_config):
    """Test the notifier creates its own SES client when none is given."""
    with mock_aws():
        boto3.client('ses', region_name='us-east-1').verify_email_identity(EmailAddress=SENDER)

        notifier = MailNotifier(mail_config)

        assert notifier.send([make_launch('a', 'Starlink')], date(2026, 10, 18))


def test_send_unverified_sender_raises(ses_client, mail_config):
    """Test SES rejections propagate as ClientError."""
    mail_config.sender = 'stranger@example.org'
    notifier = MailNotifier(mail_config, ses_client=ses_client)

    with pytest.raises(ClientError):
        notifier.send([make_launch('a', 'Starlink')], date(2026, 10, 18))
