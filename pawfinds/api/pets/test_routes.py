# pawfinds/api/pets/test_routes.py
"""
입양 게시물 API 테스트

사용법: python -m pytest pawfinds/api/pets/test_routes.py -v
"""

import io
import os
from datetime import datetime, timezone

import pytest

from pawfinds.services.mail_service import mail

FORM = {
    'name': 'Coco',
    'age': '2 years',
    'area': 'Chennai',
    'justification': 'Moving abroad and cannot take her along.',
    'email': 'owner@example.com',
    'phone': '9876543210',
    'type': 'Dog',
}


def _submit(client, **overrides):
    data = dict(FORM, **overrides)
    data.setdefault('picture', (io.BytesIO(b'\x89PNG fake image'), 'coco.png'))
    return client.post('/api/pets/', data=data, content_type='multipart/form-data')


def _seed(collection, listing_id, status, updated_at, **fields):
    doc = dict(FORM, listing_id=listing_id, filename=f'{listing_id}.png', status=status,
               chain_record=None, created_at=updated_at, updated_at=updated_at)
    doc.update(fields)
    collection[listing_id] = doc
    return doc


# ==================== 게시 신청 ====================

def test_submit_listing_creates_pending_record(client, app, listings_collection):
    with mail.record_messages() as outbox:
        response = _submit(client)

    assert response.status_code == 201
    body = response.get_json()
    assert body['status'] == 'Pending'
    assert body['name'] == 'Coco'
    assert body['chain_record'] is None
    assert body['created_at'].endswith('Z')

    stored = listings_collection[body['listing_id']]
    assert stored['status'] == 'Pending'
    assert os.path.exists(os.path.join(app.config['UPLOAD_FOLDER'], stored['filename']))

    assert len(outbox) == 1
    assert outbox[0].subject == 'Pet Submission Received - PawFinds'
    assert outbox[0].recipients == ['owner@example.com']


def test_submit_listing_succeeds_when_mail_fails(client, listings_collection, monkeypatch):
    def broken_send(message):
        raise ConnectionRefusedError("SMTP down")

    monkeypatch.setattr(mail, 'send', broken_send)
    response = _submit(client)

    assert response.status_code == 201
    assert response.get_json()['listing_id'] in listings_collection


def test_submit_listing_without_picture(client, listings_collection):
    response = client.post('/api/pets/', data=FORM, content_type='multipart/form-data')

    assert response.status_code == 400
    assert response.get_json()['error_code'] == 'INVALID_UPLOAD'
    assert listings_collection == {}


def test_submit_listing_rejects_non_image(client, listings_collection):
    response = _submit(client, picture=(io.BytesIO(b'#!/bin/sh'), 'run.sh'))

    assert response.status_code == 400
    assert response.get_json()['error_code'] == 'INVALID_UPLOAD'
    assert listings_collection == {}


def test_submit_listing_validation_error(client, listings_collection):
    response = _submit(client, email='not-an-email', name='')

    assert response.status_code == 400
    body = response.get_json()
    assert body['error_code'] == 'VALIDATION_ERROR'
    assert set(body['details']) == {'email', 'name'}
    assert listings_collection == {}


# ==================== 목록 조회 ====================

def test_list_returns_empty_array_when_no_match(client):
    response = client.get('/api/pets/?status=Approved')

    assert response.status_code == 200
    assert response.get_json() == []


def test_list_defaults_to_approved_sorted_by_updated_at(client, listings_collection):
    _seed(listings_collection, 'old', 'Approved', datetime(2024, 1, 1, tzinfo=timezone.utc))
    _seed(listings_collection, 'new', 'Approved', datetime(2024, 3, 1, tzinfo=timezone.utc))
    _seed(listings_collection, 'waiting', 'Pending', datetime(2024, 5, 1, tzinfo=timezone.utc))

    response = client.get('/api/pets/')

    assert response.status_code == 200
    assert [item['listing_id'] for item in response.get_json()] == ['new', 'old']
    assert response.get_json()[0]['updated_at'] == '2024-03-01T00:00:00Z'


def test_list_pending_requires_admin(client, listings_collection, admin_headers):
    _seed(listings_collection, 'waiting', 'Pending', datetime(2024, 5, 1, tzinfo=timezone.utc))

    assert client.get('/api/pets/?status=Pending').status_code == 403

    response = client.get('/api/pets/?status=Pending', headers=admin_headers)
    assert response.status_code == 200
    assert [item['listing_id'] for item in response.get_json()] == ['waiting']


def test_list_rejects_unknown_status(client):
    response = client.get('/api/pets/?status=Adopted')

    assert response.status_code == 400
    assert response.get_json()['error_code'] == 'VALIDATION_ERROR'


def test_get_listing_hides_pending_from_public(client, listings_collection, admin_headers):
    _seed(listings_collection, 'waiting', 'Pending', datetime(2024, 5, 1, tzinfo=timezone.utc))

    assert client.get('/api/pets/waiting').status_code == 404
    response = client.get('/api/pets/waiting', headers=admin_headers)
    assert response.status_code == 200
    assert response.get_json()['status'] == 'Pending'


# ==================== 승인 / 거절 ====================

def test_review_requires_token(client, listings_collection):
    _seed(listings_collection, 'waiting', 'Pending', datetime(2024, 5, 1, tzinfo=timezone.utc))

    response = client.patch('/api/pets/waiting/status', json={'status': 'Approved'})

    assert response.status_code == 401
    assert listings_collection['waiting']['status'] == 'Pending'


def test_review_approves_and_sends_one_mail(client, listings_collection, admin_headers, fake_chain):
    _seed(listings_collection, 'waiting', 'Pending', datetime(2024, 5, 1, tzinfo=timezone.utc))

    with mail.record_messages() as outbox:
        response = client.patch('/api/pets/waiting/status', headers=admin_headers,
                                json={'status': 'Approved', 'phone': '1112223333'})

    assert response.status_code == 200
    body = response.get_json()
    assert body['status'] == 'Approved'
    assert body['phone'] == '1112223333'
    assert body['chain_record']['tx_hash'] == '0x' + 'ab' * 32

    stored = listings_collection['waiting']
    assert stored['status'] == 'Approved'
    assert stored['chain_record']['tx_hash'] == '0x' + 'ab' * 32
    assert stored['updated_at'] > datetime(2024, 5, 1, tzinfo=timezone.utc)

    assert fake_chain.calls == [('Coco', 'owner@example.com', '1112223333', 'Approved')]
    assert len(outbox) == 1
    assert outbox[0].subject == 'Your Pet is Now Live on PawFinds!'


def test_review_rejects_and_sends_rejection_mail(client, listings_collection, admin_headers, fake_chain):
    _seed(listings_collection, 'waiting', 'Pending', datetime(2024, 5, 1, tzinfo=timezone.utc))

    with mail.record_messages() as outbox:
        response = client.patch('/api/pets/waiting/status', headers=admin_headers, json={'status': 'Rejected'})

    assert response.status_code == 200
    assert listings_collection['waiting']['status'] == 'Rejected'
    assert fake_chain.calls[0][3] == 'Rejected'
    assert [m.subject for m in outbox] == ['Pet Submission Not Approved - PawFinds']


def test_review_chain_failure_leaves_listing_unchanged(client, listings_collection, admin_headers, fake_chain):
    _seed(listings_collection, 'waiting', 'Pending', datetime(2024, 5, 1, tzinfo=timezone.utc))
    fake_chain.fail = True

    with mail.record_messages() as outbox:
        response = client.patch('/api/pets/waiting/status', headers=admin_headers,
                                json={'status': 'Approved', 'name': 'Renamed'})

    assert response.status_code == 502
    assert response.get_json()['error_code'] == 'CHAIN_RECORD_FAILED'
    stored = listings_collection['waiting']
    assert stored['status'] == 'Pending'
    assert stored['name'] == 'Coco'
    assert stored['chain_record'] is None
    assert outbox == []


def test_review_rejects_second_decision(client, listings_collection, admin_headers, fake_chain):
    _seed(listings_collection, 'done', 'Approved', datetime(2024, 5, 1, tzinfo=timezone.utc))

    response = client.patch('/api/pets/done/status', headers=admin_headers, json={'status': 'Rejected'})

    assert response.status_code == 409
    assert response.get_json()['error_code'] == 'INVALID_STATUS_TRANSITION'
    assert fake_chain.calls == []


@pytest.mark.parametrize('payload', [{}, {'status': 'Pending'}, {'status': 'Approved', 'email': 'nope'}])
def test_review_validation_error(client, listings_collection, admin_headers, payload):
    _seed(listings_collection, 'waiting', 'Pending', datetime(2024, 5, 1, tzinfo=timezone.utc))

    response = client.patch('/api/pets/waiting/status', headers=admin_headers, json=payload)

    assert response.status_code == 400
    assert response.get_json()['error_code'] == 'VALIDATION_ERROR'


def test_review_unknown_listing(client, admin_headers):
    response = client.patch('/api/pets/missing/status', headers=admin_headers, json={'status': 'Approved'})

    assert response.status_code == 404
    assert response.get_json()['error_code'] == 'LISTING_NOT_FOUND'


def test_review_forbidden_for_non_admin(client, listings_collection, user_headers):
    _seed(listings_collection, 'waiting', 'Pending', datetime(2024, 5, 1, tzinfo=timezone.utc))

    response = client.patch('/api/pets/waiting/status', headers=user_headers, json={'status': 'Approved'})

    assert response.status_code == 403
    assert response.get_json()['error_code'] == 'FORBIDDEN'


# ==================== 삭제 ====================

def test_delete_removes_document_and_file(client, app, listings_collection, admin_headers):
    created = _submit(client).get_json()
    picture_path = os.path.join(app.config['UPLOAD_FOLDER'], created['filename'])
    assert os.path.exists(picture_path)

    with mail.record_messages() as outbox:
        response = client.delete(f"/api/pets/{created['listing_id']}", headers=admin_headers)

    assert response.status_code == 200
    assert created['listing_id'] not in listings_collection
    assert not os.path.exists(picture_path)
    assert [m.subject for m in outbox] == ['Pet Submission Removed - PawFinds']


def test_delete_without_uploaded_file_still_succeeds(client, listings_collection, admin_headers):
    _seed(listings_collection, 'orphan', 'Approved', datetime(2024, 5, 1, tzinfo=timezone.utc))

    response = client.delete('/api/pets/orphan', headers=admin_headers)

    assert response.status_code == 200
    assert 'orphan' not in listings_collection


def test_delete_unknown_listing(client, admin_headers):
    response = client.delete('/api/pets/missing', headers=admin_headers)

    assert response.status_code == 404


def test_unknown_route_returns_json_404(client):
    response = client.get('/api/unknown')

    assert response.status_code == 404
    assert response.get_json()['error_code'] == 'NOT_FOUND'
