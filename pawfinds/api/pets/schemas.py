# pawfinds/api/pets/schemas.py
from marshmallow import Schema, fields, validate, EXCLUDE

from pawfinds.models.pet_listing import ListingStatus
from pawfinds.utils.datetime_utils import DateTimeUtils

ALL_STATUSES = [s.value for s in ListingStatus]
DECISION_STATUSES = [ListingStatus.APPROVED.value, ListingStatus.REJECTED.value]


def _required_str(max_length: int, label: str):
    return fields.Str(
        required=True,
        validate=validate.Length(min=1, max=max_length),
        error_messages={"required": f"{label}은(는) 필수입니다."}
    )


class UtcDateTime(fields.DateTime):
    """응답의 시간 값을 'Z' 접미사가 붙은 UTC ISO 문자열로 직렬화합니다."""

    def _serialize(self, value, attr, obj, **kwargs):
        if value is None:
            return None
        return DateTimeUtils.to_iso_string(value)


class ListingCreateSchema(Schema):
    """POST /api/pets/ 입양 게시 신청(multipart form) 스키마. 사진 파일은 'picture' 필드로 별도 전달됩니다."""
    class Meta:
        unknown = EXCLUDE

    name = _required_str(50, "이름(name)")
    age = _required_str(20, "나이(age)")
    area = _required_str(100, "지역(area)")
    justification = _required_str(1000, "입양 사유(justification)")
    email = fields.Email(required=True, error_messages={"required": "이메일(email)은 필수입니다."})
    phone = _required_str(30, "연락처(phone)")
    type = _required_str(30, "종류(type)")


class ListingReviewSchema(Schema):
    """PATCH /api/pets/<listing_id>/status 관리자 승인/거절 요청 스키마."""
    status = fields.Str(required=True, validate=validate.OneOf(DECISION_STATUSES))
    name = fields.Str(validate=validate.Length(min=1, max=50))
    email = fields.Email()
    phone = fields.Str(validate=validate.Length(min=1, max=30))


class ListingQuerySchema(Schema):
    """GET /api/pets/ 조회 파라미터 스키마."""
    class Meta:
        unknown = EXCLUDE

    status = fields.Str(load_default=ListingStatus.APPROVED.value, validate=validate.OneOf(ALL_STATUSES))


class ChainRecordSchema(Schema):
    tx_hash = fields.Str()
    block_number = fields.Int()
    from_account = fields.Str()
    contract_address = fields.Str()
    event = fields.Dict(allow_none=True)


class ListingResponseSchema(Schema):
    """게시물 응답 스키마 (등록, 조회, 승인, 삭제 시 모두 사용)."""
    listing_id = fields.Str(dump_only=True)
    name = fields.Str()
    age = fields.Str()
    area = fields.Str()
    justification = fields.Str()
    email = fields.Str()
    phone = fields.Str()
    type = fields.Str()
    filename = fields.Str()
    status = fields.Str()
    chain_record = fields.Nested(ChainRecordSchema, allow_none=True)
    created_at = UtcDateTime()
    updated_at = UtcDateTime()
