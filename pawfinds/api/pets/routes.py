# pawfinds/api/pets/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from pawfinds.core.security import admin_required, is_admin_request
from pawfinds.models.pet_listing import ListingStatus, InvalidStatusTransition
from pawfinds.services.chain_service import ChainRecordError
from .schemas import (
    ListingCreateSchema,
    ListingReviewSchema,
    ListingQuerySchema,
    ListingResponseSchema
)

pets_bp = Blueprint('pets_bp', __name__)

NOT_FOUND_RESPONSE = {"error_code": "LISTING_NOT_FOUND", "message": "해당 ID의 입양 게시물을 찾을 수 없습니다."}


@pets_bp.route('/', methods=['POST'])
def submit_listing():
    """입양 게시 신청 API (multipart/form-data, 사진은 'picture' 필드)."""
    listing_service = current_app.services['listings']
    try:
        form_data = ListingCreateSchema().load(request.form.to_dict())
        listing = listing_service.submit_listing(form_data, request.files.get('picture'))
        return jsonify(ListingResponseSchema().dump(listing.to_dict())), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "INVALID_UPLOAD", "message": str(e)}), 400
    except HTTPException:
        # 업로드 용량 초과(413) 등은 전역 HTTP 에러 핸들러에서 처리
        raise
    except Exception as e:
        logging.error(f"Listing submission API error: {e}", exc_info=True)
        return jsonify({"error_code": "LISTING_SUBMISSION_FAILED", "message": "게시 신청 처리 중 오류가 발생했습니다."}), 500


@pets_bp.route('/', methods=['GET'])
def list_listings():
    """
    상태별 게시물 목록을 최근 수정 순으로 조회합니다.
    - Approved(기본값)는 공개, Pending/Rejected는 관리자 전용입니다.
    - 결과가 없으면 빈 배열을 반환합니다.
    """
    listing_service = current_app.services['listings']
    try:
        params = ListingQuerySchema().load(request.args.to_dict())
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

    status = ListingStatus(params['status'])
    if status is not ListingStatus.APPROVED and not is_admin_request():
        return jsonify({"error_code": "FORBIDDEN", "message": "관리자만 조회할 수 있는 상태입니다."}), 403

    try:
        listings = listing_service.list_listings(status)
        return jsonify(ListingResponseSchema(many=True).dump([l.to_dict() for l in listings])), 200
    except Exception as e:
        logging.error(f"List listings API error (status: {status.value}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "게시물 목록 조회 중 오류가 발생했습니다."}), 500


@pets_bp.route('/<string:listing_id>', methods=['GET'])
def get_listing(listing_id: str):
    """게시물 한 건을 조회합니다. 승인되지 않은 게시물은 관리자만 조회할 수 있습니다."""
    listing_service = current_app.services['listings']
    try:
        listing = listing_service.get_listing(listing_id)
    except FileNotFoundError:
        return jsonify(NOT_FOUND_RESPONSE), 404

    if listing.status is not ListingStatus.APPROVED and not is_admin_request():
        # 비공개 게시물의 존재 여부를 노출하지 않음
        return jsonify(NOT_FOUND_RESPONSE), 404
    return jsonify(ListingResponseSchema().dump(listing.to_dict())), 200


@pets_bp.route('/<string:listing_id>/status', methods=['PATCH'])
@admin_required
def review_listing(listing_id: str):
    """[관리자 전용] 게시물을 승인/거절하고 결정을 블록체인에 기록합니다."""
    listing_service = current_app.services['listings']
    try:
        decision = ListingReviewSchema().load(request.get_json(silent=True) or {})
        listing = listing_service.review_listing(listing_id, decision)
        return jsonify(ListingResponseSchema().dump(listing.to_dict())), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except FileNotFoundError:
        return jsonify(NOT_FOUND_RESPONSE), 404
    except InvalidStatusTransition as e:
        return jsonify({"error_code": "INVALID_STATUS_TRANSITION", "message": str(e)}), 409
    except ChainRecordError as e:
        return jsonify({"error_code": "CHAIN_RECORD_FAILED", "message": str(e)}), 502
    except Exception as e:
        logging.error(f"Review listing API error (listing_id: {listing_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "게시물 승인 처리 중 오류가 발생했습니다."}), 500


@pets_bp.route('/<string:listing_id>', methods=['DELETE'])
@admin_required
def delete_listing(listing_id: str):
    """[관리자 전용] 게시물과 업로드된 사진을 삭제합니다."""
    listing_service = current_app.services['listings']
    try:
        listing = listing_service.delete_listing(listing_id)
        return jsonify({"message": "게시물이 삭제되었습니다.", "listing_id": listing.listing_id}), 200
    except FileNotFoundError:
        return jsonify(NOT_FOUND_RESPONSE), 404
    except Exception as e:
        logging.error(f"Delete listing API error (listing_id: {listing_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "게시물 삭제 중 오류가 발생했습니다."}), 500
