# pawfinds/api/auth/routes.py

import logging
from flask import Blueprint, request, jsonify, current_app
from marshmallow import ValidationError

from pawfinds.core.security import create_admin_token
from .schemas import AdminLoginSchema

auth_bp = Blueprint('auth_bp', __name__)


@auth_bp.route('/login', methods=['POST'])
def admin_login():
    """관리자 로그인. 성공 시 게시물 승인/삭제에 사용할 Access Token을 발급합니다."""
    auth_service = current_app.services['auth']
    try:
        credentials = AdminLoginSchema().load(request.get_json(silent=True) or {})
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

    try:
        if not auth_service.authenticate_admin(credentials['username'], credentials['password']):
            return jsonify({"error_code": "INVALID_CREDENTIALS", "message": "아이디 또는 비밀번호가 올바르지 않습니다."}), 401

        access_token = create_admin_token(credentials['username'])
        return jsonify({"access_token": access_token, "role": "admin"}), 200
    except Exception as e:
        logging.error(f"관리자 로그인 중 예외 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부 오류가 발생했습니다."}), 500
