# pawfinds/models/pet_listing.py
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from enum import Enum
import logging


class ListingStatus(Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"

    def can_transition_to(self, new_status: "ListingStatus") -> bool:
        """관리자 결정은 Pending 상태의 게시물에 대해 한 번만 내릴 수 있습니다."""
        return self is ListingStatus.PENDING and new_status in (ListingStatus.APPROVED, ListingStatus.REJECTED)


class InvalidStatusTransition(ValueError):
    """허용되지 않는 상태 변경(예: Approved -> Rejected) 요청 시 발생합니다."""

    def __init__(self, current: ListingStatus, requested: ListingStatus):
        self.current = current
        self.requested = requested
        super().__init__(f"'{current.value}' 상태의 게시물은 '{requested.value}'(으)로 변경할 수 없습니다.")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PetListing:
    """
    Firestore 'pet_listings' 컬렉션 문서 구조.
    입양 게시 신청 한 건과, 관리자 승인 시 블록체인에 기록된 트랜잭션 정보를 함께 보관합니다.
    """
    listing_id: str
    name: str
    age: str
    area: str
    justification: str
    email: str
    phone: str
    type: str
    filename: str
    status: ListingStatus = ListingStatus.PENDING
    chain_record: Optional[Dict[str, Any]] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PetListing":
        """
        Firestore 문서 딕셔너리로부터 PetListing 인스턴스를 생성합니다.

        :raises ValueError: 저장된 status 값이 ListingStatus가 아닌 경우.
                            손상된 문서를 Pending으로 대체하지 않습니다.
        """
        processed_data = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}

        status_str = processed_data.get('status')
        if isinstance(status_str, str):
            try:
                processed_data['status'] = ListingStatus(status_str)
            except ValueError:
                logging.error(f"Invalid ListingStatus value '{status_str}' for listing {processed_data.get('listing_id')}")
                raise ValueError(f"'{status_str}'은(는) 알 수 없는 게시물 상태입니다.")

        return cls(**processed_data)

    def to_dict(self) -> Dict[str, Any]:
        """Firestore 저장 및 응답 직렬화를 위한 딕셔너리로 변환합니다. (Enum은 문자열 값으로 변환)"""
        listing_dict = asdict(self)
        listing_dict['status'] = self.status.value
        return listing_dict
