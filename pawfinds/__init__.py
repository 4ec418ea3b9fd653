# pawfinds/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from typing import Optional, Dict, Any
from flask import Flask, jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials, firestore

# - 설정
from pawfinds.core.config import config_by_name

# - API 블루프린트
from pawfinds.api.auth.routes import auth_bp
from pawfinds.api.pets.routes import pets_bp
from pawfinds.api.health.routes import health_bp

# - 서비스 모듈
from pawfinds.services.storage_service import StorageService
from pawfinds.services.mail_service import MailService
from pawfinds.services.chain_service import ChainService
from pawfinds.services.event_listener import ChainEventListener
from pawfinds.api.auth.services import AuthService
from pawfinds.api.pets.services import PetListingService


def create_app(config_name: Optional[str] = None, db=None, test_config: Optional[Dict[str, Any]] = None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' / 'testing' / 'production' (기본값: FLASK_ENV)
    :param db: Firestore 클라이언트. 지정하지 않으면 firebase_admin으로 초기화합니다.
    :param test_config: 설정 클래스 위에 덮어쓸 설정 값 (테스트용)
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    if test_config:
        app.config.update(test_config)
    app.json.ensure_ascii = False

    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    # =====================================================================================
    # 4. 확장 기능 및 외부 서비스 초기화
    # =====================================================================================
    JWTManager(app)

    if db is None:
        if not firebase_admin._apps:
            cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
            if not cred_path or not os.path.exists(cred_path):
                raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
            firebase_admin.initialize_app(credentials.Certificate(cred_path))
        db = firestore.client()

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    app.services = {}

    # 5-1. 다른 서비스의 기반이 되는 공용 서비스 먼저 생성
    try:
        storage_instance = StorageService()
        storage_instance.init_app(app)
        app.services['storage'] = storage_instance
        logging.info("Storage service initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize storage service: {e}")
        raise

    mail_instance = MailService()
    mail_instance.init_app(app)
    app.services['mail'] = mail_instance

    # 노드가 꺼져 있어도 앱은 기동되며, 연결 실패는 로그로만 남습니다.
    chain_instance = ChainService()
    chain_instance.init_app(app)
    app.services['chain'] = chain_instance

    auth_instance = AuthService()
    auth_instance.init_app(app)
    app.services['auth'] = auth_instance

    # 5-2. 다른 서비스를 주입받아야 하는 도메인 서비스 생성
    app.services['listings'] = PetListingService(
        db=db,
        storage_service=app.services['storage'],
        mail_service=app.services['mail'],
        chain_service=app.services['chain']
    )
    logging.info("Pet listing service initialized successfully")

    # 5-3. 컨트랙트 이벤트 리스너 (프로세스당 1개)
    app.services['chain_events'] = ChainEventListener(
        chain_service=app.services['chain'],
        poll_interval=app.config['CHAIN_EVENT_POLL_INTERVAL']
    )
    if app.config.get('CHAIN_EVENT_LISTENER_ENABLED') and chain_instance.enabled:
        app.services['chain_events'].start()

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(pets_bp, url_prefix='/api/pets')
    app.register_blueprint(health_bp, url_prefix='/api/health')

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(err):
        # 404(없는 경로), 405, 413(업로드 용량 초과) 등은 상태 코드를 그대로 유지
        error_code = (err.name or "HTTP_ERROR").upper().replace(" ", "_")
        return jsonify({"error_code": error_code, "message": err.description}), err.code

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부에서 예상치 못한 오류가 발생했습니다."}
        return jsonify(response), 500

    # =====================================================================================
    # 8. 앱 반환
    # =====================================================================================
    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
