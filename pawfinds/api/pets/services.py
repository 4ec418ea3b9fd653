# pawfinds/api/pets/services.py
import logging
import threading
import uuid
from typing import Dict, Any, List, Optional
from firebase_admin import firestore
from werkzeug.datastructures import FileStorage

# 도메인 모델
from pawfinds.models.pet_listing import PetListing, ListingStatus, InvalidStatusTransition

# 유틸리티 및 공용 서비스
from pawfinds.utils.datetime_utils import DateTimeUtils
from pawfinds.services.storage_service import StorageService
from pawfinds.services.mail_service import MailService
from pawfinds.services.chain_service import ChainService, ChainRecordError

# 관리자 결정 시 덮어쓸 수 있는 연락처 필드
OVERRIDABLE_FIELDS = ('name', 'email', 'phone')


class PetListingService:
    """입양 게시 신청의 등록, 관리자 승인/거절, 삭제, 조회를 전담하는 서비스."""
    def __init__(self,
                 db,
                 storage_service: StorageService,
                 mail_service: MailService,
                 chain_service: ChainService):
        self.db = db
        self.listings_ref = self.db.collection('pet_listings')
        self.storage_service = storage_service
        self.mail_service = mail_service
        self.chain_service = chain_service
        # 같은 게시물에 대한 관리자 결정은 프로세스 내에서 한 번에 하나씩 처리
        self._review_locks: Dict[str, threading.Lock] = {}
        self._review_locks_guard = threading.Lock()
        logging.info("PetListingService initialized with dependencies.")

    def _get_listing(self, listing_id: str) -> Optional[PetListing]:
        doc = self.listings_ref.document(listing_id).get()
        if not doc.exists:
            return None
        return PetListing.from_dict(DateTimeUtils.from_firestore(doc.to_dict()))

    def get_listing(self, listing_id: str) -> PetListing:
        listing = self._get_listing(listing_id)
        if not listing:
            raise FileNotFoundError("해당 ID의 입양 게시물을 찾을 수 없습니다.")
        return listing

    def submit_listing(self, form_data: Dict[str, Any], picture: Optional[FileStorage]) -> PetListing:
        """
        사진을 저장하고 'Pending' 상태의 게시물을 생성한 뒤 접수 안내 메일을 보냅니다.
        메일 발송 실패는 게시물 생성 결과에 영향을 주지 않습니다.
        """
        filename = self.storage_service.save_upload(picture)

        listing = PetListing(
            listing_id=str(uuid.uuid4()),
            name=form_data['name'], age=form_data['age'], area=form_data['area'],
            justification=form_data['justification'], email=form_data['email'],
            phone=form_data['phone'], type=form_data['type'],
            filename=filename,
            status=ListingStatus.PENDING
        )

        try:
            self.listings_ref.document(listing.listing_id).set(DateTimeUtils.for_firestore(listing.to_dict()))
        except Exception as e:
            logging.error(f"Listing creation failed, removing uploaded file {filename}: {e}", exc_info=True)
            try:
                self.storage_service.delete_upload(filename)
            except Exception as cleanup_error:
                logging.error(f"업로드 파일 정리 중 추가 오류: {cleanup_error}")
            raise

        logging.info(f"Pet listing submitted: {listing.listing_id} ({listing.name}, {listing.type})")
        self.mail_service.send_submission_received(listing)
        return listing

    def _review_lock(self, listing_id: str) -> threading.Lock:
        with self._review_locks_guard:
            return self._review_locks.setdefault(listing_id, threading.Lock())

    def review_listing(self, listing_id: str, decision: Dict[str, Any]) -> PetListing:
        """
        [관리자] 게시물을 승인(Approved) 또는 거절(Rejected)합니다.

        1. Pending 상태에서만 결정할 수 있습니다. (그 외 InvalidStatusTransition)
        2. 결정은 먼저 블록체인에 기록하고, 기록이 성공한 경우에만 문서를 수정합니다.
           체인 기록 실패 시 ChainRecordError가 전파되며 문서는 변경되지 않습니다.
        3. 문서 수정은 트랜잭션 안에서 상태를 다시 확인한 뒤 수행합니다.
           그 사이 다른 결정이 반영되었다면 InvalidStatusTransition이 발생합니다.
        4. 결과 안내 메일은 정확히 한 통 발송합니다. (best-effort)
        """
        with self._review_lock(listing_id):
            return self._review_listing(listing_id, decision)

    def _review_listing(self, listing_id: str, decision: Dict[str, Any]) -> PetListing:
        listing = self.get_listing(listing_id)
        new_status = ListingStatus(decision['status'])
        if not listing.status.can_transition_to(new_status):
            raise InvalidStatusTransition(listing.status, new_status)

        for field_name in OVERRIDABLE_FIELDS:
            if decision.get(field_name):
                setattr(listing, field_name, decision[field_name])

        logging.info(f"Reviewing listing {listing_id}: {listing.status.value} -> {new_status.value}")
        try:
            chain_record = self.chain_service.record_decision(
                listing.name, listing.email, listing.phone, new_status.value
            )
        except ChainRecordError as e:
            logging.error(f"Chain record failed for listing {listing_id}, listing left unchanged: {e}")
            raise

        listing.status = new_status
        listing.chain_record = chain_record
        listing.updated_at = DateTimeUtils.now()

        update_data = {field_name: getattr(listing, field_name) for field_name in OVERRIDABLE_FIELDS}
        update_data.update({
            'status': new_status.value,
            'chain_record': chain_record,
            'updated_at': listing.updated_at,
        })
        listing_ref = self.listings_ref.document(listing_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def _apply_in_transaction(transaction, listing_ref, update_data):
            snapshot = listing_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise FileNotFoundError("해당 ID의 입양 게시물을 찾을 수 없습니다.")
            current_status = ListingStatus(snapshot.to_dict().get('status'))
            if not current_status.can_transition_to(new_status):
                raise InvalidStatusTransition(current_status, new_status)
            transaction.update(listing_ref, update_data)

        try:
            _apply_in_transaction(transaction, listing_ref, DateTimeUtils.for_firestore(update_data))
        except InvalidStatusTransition as e:
            tx_hash = chain_record.get('tx_hash') if chain_record else None
            logging.error(f"Listing {listing_id} was decided concurrently, chain record not applied (tx: {tx_hash}): {e}")
            raise
        except Exception as e:
            # 체인에는 기록되었으나 문서 갱신에 실패한 경우: 수동 정합성 복구를 위해 tx 정보를 남김
            tx_hash = chain_record.get('tx_hash') if chain_record else None
            logging.error(f"Listing {listing_id} update failed after chain record (tx: {tx_hash}): {e}", exc_info=True)
            raise

        if new_status is ListingStatus.APPROVED:
            self.mail_service.send_listing_approved(listing)
        else:
            self.mail_service.send_listing_rejected(listing)
        return listing

    def delete_listing(self, listing_id: str) -> PetListing:
        """[관리자] 게시물과 업로드된 사진을 삭제하고 삭제 안내 메일을 보냅니다."""
        listing = self.get_listing(listing_id)
        self.listings_ref.document(listing_id).delete()

        if listing.chain_record:
            # 컨트랙트에는 삭제 기능이 없으므로 체인 기록은 남아 있음
            logging.warning(f"Deleted listing {listing_id} had chain record (tx: {listing.chain_record.get('tx_hash')})")

        try:
            self.storage_service.delete_upload(listing.filename)
        except Exception as e:
            logging.error(f"업로드 파일 삭제 실패 (listing: {listing_id}, file: {listing.filename}): {e}", exc_info=True)

        logging.info(f"Pet listing deleted: {listing_id}")
        self.mail_service.send_listing_removed(listing)
        return listing

    def list_listings(self, status: ListingStatus) -> List[PetListing]:
        """상태별 게시물을 최근 수정 순으로 조회합니다. 결과가 없으면 빈 리스트를 반환합니다."""
        query = self.listings_ref.where('status', '==', status.value) \
            .order_by('updated_at', direction=firestore.Query.DESCENDING)
        listings = []
        for doc in query.stream():
            try:
                listings.append(PetListing.from_dict(DateTimeUtils.from_firestore(doc.to_dict())))
            except (TypeError, ValueError) as e:
                logging.error(f"손상된 게시물 문서를 건너뜁니다 (id: {doc.id}): {e}")
        return listings
