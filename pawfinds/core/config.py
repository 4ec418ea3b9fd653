# pawfinds/core/config.py

import os # 환경 변수를 읽기 위해 사용합니다. (.env 파일은 pawfinds/__init__.py에서 먼저 로드됩니다.)


def _env_bool(key: str, default: bool) -> bool:
    """'true', '1', 'yes' 같은 문자열 환경 변수를 bool로 해석합니다."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # 관리자 토큰 서명에 사용하는 키입니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')

    # 관리자 계정. 비밀번호는 werkzeug generate_password_hash()로 만든 해시 값만 보관합니다.
    ADMIN_USERNAME = os.getenv('ADMIN_USERNAME', 'admin')
    ADMIN_PASSWORD_HASH = os.getenv('ADMIN_PASSWORD_HASH')

    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')

    # 업로드된 반려동물 사진이 저장되는 고정 디렉터리
    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', os.path.join(os.getcwd(), 'images'))
    ALLOWED_IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}
    MAX_CONTENT_LENGTH = int(os.getenv('MAX_UPLOAD_BYTES', 10 * 1024 * 1024))

    # Flask-Mail (Gmail SMTP 릴레이)
    MAIL_SERVER = os.getenv('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.getenv('MAIL_PORT', 587))
    MAIL_USE_TLS = _env_bool('MAIL_USE_TLS', True)
    MAIL_USE_SSL = _env_bool('MAIL_USE_SSL', False)
    MAIL_USERNAME = os.getenv('EMAIL_USER')
    MAIL_PASSWORD = os.getenv('EMAIL_APP_PASS')
    MAIL_DEFAULT_SENDER = os.getenv('EMAIL_USER')

    # 로컬 이더리움 테스트 네트워크 (Ganache)
    CHAIN_ENABLED = _env_bool('CHAIN_ENABLED', True)
    CHAIN_RPC_URL = os.getenv('CHAIN_RPC_URL', 'http://127.0.0.1:7545')
    CHAIN_RPC_TIMEOUT = float(os.getenv('CHAIN_RPC_TIMEOUT', 10))
    CHAIN_RECEIPT_TIMEOUT = float(os.getenv('CHAIN_RECEIPT_TIMEOUT', 30))
    CHAIN_CONTRACT_ARTIFACT = os.getenv(
        'CHAIN_CONTRACT_ARTIFACT',
        os.path.join(os.getcwd(), 'Blockchain', 'build', 'contracts', 'PetAdoption.json')
    )
    CHAIN_CONTRACT_ADDRESS = os.getenv('CHAIN_CONTRACT_ADDRESS')
    CHAIN_ADMIN_ACCOUNT_INDEX = int(os.getenv('CHAIN_ADMIN_ACCOUNT_INDEX', 0))
    CHAIN_ADMIN_PASSPHRASE = os.getenv('CHAIN_ADMIN_PASSPHRASE', '')
    CHAIN_UNLOCK_DURATION = int(os.getenv('CHAIN_UNLOCK_DURATION', 600))
    CHAIN_GAS_LIMIT = int(os.getenv('CHAIN_GAS_LIMIT', 3000000))
    CHAIN_EVENT_NAME = os.getenv('CHAIN_EVENT_NAME', 'PetAdded')
    CHAIN_EVENT_LISTENER_ENABLED = _env_bool('CHAIN_EVENT_LISTENER_ENABLED', True)
    CHAIN_EVENT_POLL_INTERVAL = float(os.getenv('CHAIN_EVENT_POLL_INTERVAL', 2))


class DevelopmentConfig(Config):
    """개발 환경 설정. 코드 변경 시 자동 재시작, 상세 디버그 페이지를 사용합니다."""
    DEBUG = True


class TestingConfig(Config):
    """테스트 환경 설정. 외부 서비스(메일, 체인, Firestore)는 테스트에서 주입합니다."""
    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = 'pawfinds-test-secret'
    MAIL_SUPPRESS_SEND = True
    MAIL_DEFAULT_SENDER = 'noreply@pawfinds.test'
    CHAIN_ENABLED = False
    CHAIN_EVENT_LISTENER_ENABLED = False


class ProductionConfig(Config):
    """운영 환경 설정."""
    DEBUG = False


# FLASK_ENV 값에 따라 create_app()에서 사용할 설정 클래스를 선택합니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
