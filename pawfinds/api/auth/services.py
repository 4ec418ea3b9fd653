# pawfinds/api/auth/services.py
import hmac
import logging
from typing import Optional
from flask import Flask
from werkzeug.security import check_password_hash


class AuthService:
    """
    관리자 인증 로직을 담당하는 서비스 클래스.
    관리자 계정은 하나이며, 자격 증명은 환경 변수(ADMIN_USERNAME, ADMIN_PASSWORD_HASH)로 설정합니다.
    """
    def __init__(self):
        self.admin_username: Optional[str] = None
        self.admin_password_hash: Optional[str] = None

    def init_app(self, app: Flask):
        self.admin_username = app.config.get('ADMIN_USERNAME')
        self.admin_password_hash = app.config.get('ADMIN_PASSWORD_HASH')
        if not self.admin_password_hash:
            logging.warning("AuthService: ADMIN_PASSWORD_HASH가 설정되지 않아 관리자 로그인이 비활성화됩니다.")

    def authenticate_admin(self, username: str, password: str) -> bool:
        """관리자 자격 증명이 일치하면 True를 반환합니다."""
        if not self.admin_username or not self.admin_password_hash:
            return False
        username_ok = hmac.compare_digest(username.encode('utf-8'), self.admin_username.encode('utf-8'))
        # 사용자명이 틀려도 해시 검증을 수행하여 응답 시간 차이를 줄임
        password_ok = check_password_hash(self.admin_password_hash, password)
        if username_ok and password_ok:
            logging.info(f"Admin login succeeded: {username}")
            return True
        logging.warning(f"Admin login failed: {username}")
        return False
