# pawfinds/api/health/routes.py
from flask import Blueprint, jsonify, current_app

health_bp = Blueprint('health_bp', __name__)


@health_bp.route('', methods=['GET'])
def health_check():
    """서버 및 블록체인 노드 연결 상태를 반환합니다."""
    chain_service = current_app.services['chain']
    return jsonify({
        "status": "ok",
        "chain": {
            "enabled": chain_service.enabled,
            "connected": chain_service.is_connected()
        }
    }), 200
