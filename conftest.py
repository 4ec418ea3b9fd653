# conftest.py
"""
공용 pytest 픽스처

- FakeFirestore: 서비스가 사용하는 Firestore API(collection/document/where/order_by/stream/transaction)만 흉내 낸 메모리 저장소
- FakeChainService: addPet 기록 결과를 돌려주거나 실패를 흉내 내는 체인 서비스
"""

import copy
import pytest
from werkzeug.security import generate_password_hash
from flask_jwt_extended import create_access_token

from pawfinds import create_app
from pawfinds.core.security import create_admin_token
from pawfinds.services.chain_service import ChainRecordError

ADMIN_PASSWORD = "s3cret-paws"


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = copy.deepcopy(data)

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)


class FakeDocumentReference:
    def __init__(self, store, doc_id):
        self._store = store
        self.id = doc_id

    def get(self, transaction=None):
        return FakeSnapshot(self.id, self._store.get(self.id))

    def set(self, data):
        self._store[self.id] = copy.deepcopy(data)

    def update(self, data):
        if self.id not in self._store:
            raise KeyError(f"No document to update: {self.id}")
        self._store[self.id].update(copy.deepcopy(data))

    def delete(self):
        self._store.pop(self.id, None)


class FakeQuery:
    def __init__(self, store, filters=(), order=None):
        self._store = store
        self._filters = filters
        self._order = order

    def where(self, field, op, value):
        assert op == '==', "FakeQuery는 '==' 조건만 지원합니다."
        return FakeQuery(self._store, self._filters + ((field, value),), self._order)

    def order_by(self, field, direction='ASCENDING'):
        return FakeQuery(self._store, self._filters, (field, direction))

    def stream(self):
        docs = [
            (doc_id, data) for doc_id, data in self._store.items()
            if all(data.get(field) == value for field, value in self._filters)
        ]
        if self._order:
            field, direction = self._order
            docs.sort(key=lambda item: item[1][field], reverse=(direction == 'DESCENDING'))
        for doc_id, data in docs:
            yield FakeSnapshot(doc_id, data)


class FakeCollection(FakeQuery):
    def document(self, doc_id):
        return FakeDocumentReference(self._store, doc_id)


class FakeTransaction:
    """firestore.transactional이 호출하는 트랜잭션 인터페이스만 흉내 냅니다. 쓰기는 커밋 시점에 반영됩니다."""

    def __init__(self, max_attempts=5):
        self._max_attempts = max_attempts
        self._read_only = False
        self._id = None
        self._writes = []

    def _clean_up(self):
        self._writes = []
        self._id = None

    def _begin(self, retry_id=None):
        self._id = b'fake-transaction'

    def update(self, reference, data):
        self._writes.append((reference, data))

    def _commit(self):
        writes = self._writes
        for reference, data in writes:
            reference.update(data)
        self._clean_up()
        return writes

    def _rollback(self):
        self._clean_up()


class FakeFirestore:
    def __init__(self):
        self.collections = {}

    def collection(self, name):
        return FakeCollection(self.collections.setdefault(name, {}))

    def transaction(self):
        return FakeTransaction()


class FakeChainService:
    """record_decision 호출을 기록하고, fail=True이면 ChainRecordError를 발생시킵니다."""

    def __init__(self):
        self.enabled = True
        self.fail = False
        self.calls = []

    def is_connected(self):
        return True

    def record_decision(self, name, email, phone, status):
        self.calls.append((name, email, phone, status))
        if self.fail:
            raise ChainRecordError("노드에 연결할 수 없습니다.")
        return {
            'tx_hash': '0x' + 'ab' * 32,
            'block_number': len(self.calls),
            'from_account': '0x627306090abaB3A6e1400e9345bC60c78a8BEf57',
            'contract_address': '0xD5cb33D324442ec54B2823166dB588A9FE31BDa9',
            'event': {'name': name, 'status': status},
        }


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def fake_chain():
    return FakeChainService()


@pytest.fixture
def app(fake_db, fake_chain, tmp_path):
    app = create_app('testing', db=fake_db, test_config={
        'UPLOAD_FOLDER': str(tmp_path / 'images'),
        'ADMIN_USERNAME': 'admin',
        'ADMIN_PASSWORD_HASH': generate_password_hash(ADMIN_PASSWORD),
    })
    app.services['chain'] = fake_chain
    app.services['listings'].chain_service = fake_chain
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_password():
    return ADMIN_PASSWORD


@pytest.fixture
def admin_headers(app):
    with app.app_context():
        token = create_admin_token('admin')
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(app):
    """role 클레임이 없는 일반 토큰"""
    with app.app_context():
        token = create_access_token(identity='someone')
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def listings_collection(fake_db):
    return fake_db.collections.setdefault('pet_listings', {})
