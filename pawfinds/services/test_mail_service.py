# pawfinds/services/test_mail_service.py
import logging

import pytest
from flask import Flask

from pawfinds.models.pet_listing import PetListing
from pawfinds.services.mail_service import MailService, mail


@pytest.fixture
def mail_app():
    app = Flask(__name__)
    app.config.update(MAIL_SUPPRESS_SEND=True, MAIL_DEFAULT_SENDER='noreply@pawfinds.test')
    service = MailService()
    service.init_app(app)
    with app.app_context():
        yield service


@pytest.fixture
def listing():
    return PetListing(listing_id='abc', name='Coco', age='2 years', area='Chennai',
                      justification='Moving abroad.', email='owner@example.com',
                      phone='9876543210', type='Dog', filename='abc.png')


@pytest.mark.parametrize('method, subject', [
    ('send_submission_received', 'Pet Submission Received - PawFinds'),
    ('send_listing_approved', 'Your Pet is Now Live on PawFinds!'),
    ('send_listing_rejected', 'Pet Submission Not Approved - PawFinds'),
    ('send_listing_removed', 'Pet Submission Removed - PawFinds'),
])
def test_notifications(mail_app, listing, method, subject):
    with mail.record_messages() as outbox:
        assert getattr(mail_app, method)(listing) is True

    assert len(outbox) == 1
    assert outbox[0].subject == subject
    assert outbox[0].recipients == ['owner@example.com']
    assert outbox[0].sender == 'noreply@pawfinds.test'
    assert 'Coco' in outbox[0].body


def test_send_failure_is_logged_not_raised(mail_app, listing, monkeypatch, caplog):
    def broken_send(message):
        raise ConnectionRefusedError("SMTP down")

    monkeypatch.setattr(mail, 'send', broken_send)

    with caplog.at_level(logging.ERROR):
        assert mail_app.send_listing_approved(listing) is False
    assert 'SMTP down' in caplog.text


def test_missing_recipient_is_skipped(mail_app, listing):
    listing.email = ''
    with mail.record_messages() as outbox:
        assert mail_app.send_submission_received(listing) is False
    assert outbox == []
