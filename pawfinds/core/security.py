# pawfinds/core/security.py
from functools import wraps
from flask import jsonify
from flask_jwt_extended import create_access_token, get_jwt, verify_jwt_in_request

ADMIN_ROLE = "admin"


def create_admin_token(username: str) -> str:
    """관리자 역할(role) 클레임이 포함된 Access Token을 발급합니다."""
    return create_access_token(identity=username, additional_claims={"role": ADMIN_ROLE})


def is_admin_request() -> bool:
    """
    요청에 유효한 관리자 토큰이 있는지 확인합니다.
    토큰이 없으면 False, 토큰이 있지만 유효하지 않으면 flask-jwt-extended 예외가 그대로 전파됩니다.
    """
    verify_jwt_in_request(optional=True)
    return get_jwt().get("role") == ADMIN_ROLE


def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        # 토큰 누락/만료/위조는 JWTManager가 401로 응답합니다.
        verify_jwt_in_request()
        if get_jwt().get("role") != ADMIN_ROLE:
            return jsonify({"error_code": "FORBIDDEN", "message": "관리자만 접근할 수 있습니다."}), 403
        return f(*args, **kwargs)

    return decorated_function
