# pawfinds/services/chain_service.py
"""
로컬 이더리움 테스트 네트워크(Ganache)의 PetAdoption 컨트랙트와 통신하는 서비스

- 관리자 계정 잠금 해제 (personal_unlockAccount)
- addPet(name, email, phone, status) 트랜잭션 전송 및 영수증(receipt) 확인
- 영수증/블록 범위에서 PetAdded 이벤트 디코딩
"""

import json
import logging
import os
import threading
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from flask import Flask
from web3 import Web3
from web3.logs import DISCARD

logger = logging.getLogger(__name__)


class ChainRecordError(RuntimeError):
    """블록체인 기록(계정 잠금 해제, 컨트랙트 로드, 트랜잭션 전송)이 실패했을 때 발생합니다."""


def to_jsonable(value: Any) -> Any:
    """이벤트 인자/영수증 값을 Firestore와 JSON 응답에 저장 가능한 형태로 변환합니다."""
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value)
    if isinstance(value, Mapping):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    # Firestore 정수 범위(int64)를 넘는 uint256 값은 문자열로 보관
    if isinstance(value, int) and not isinstance(value, bool) and abs(value) >= 2 ** 63:
        return str(value)
    return value


class ChainService:
    """
    web3.py 클라이언트와 배포된 컨트랙트 객체를 관리하는 서비스 클래스입니다.
    실제 연결 정보는 init_app에서 설정되며, 컨트랙트는 처음 사용할 때 한 번만 로드됩니다.
    """

    def __init__(self, web3: Optional[Web3] = None):
        self.w3 = web3
        self.enabled = True
        self.artifact_path: Optional[str] = None
        self.contract_address: Optional[str] = None
        self.admin_account_index = 0
        self.admin_passphrase = ''
        self.unlock_duration = 600
        self.gas_limit = 3000000
        self.receipt_timeout = 30.0
        self.event_name = 'PetAdded'
        self._contract = None
        self._contract_lock = threading.Lock()

    def init_app(self, app: Flask):
        self.enabled = app.config.get('CHAIN_ENABLED', True)
        self.artifact_path = app.config.get('CHAIN_CONTRACT_ARTIFACT')
        self.contract_address = app.config.get('CHAIN_CONTRACT_ADDRESS')
        self.admin_account_index = app.config.get('CHAIN_ADMIN_ACCOUNT_INDEX', 0)
        self.admin_passphrase = app.config.get('CHAIN_ADMIN_PASSPHRASE', '')
        self.unlock_duration = app.config.get('CHAIN_UNLOCK_DURATION', 600)
        self.gas_limit = app.config.get('CHAIN_GAS_LIMIT', 3000000)
        self.receipt_timeout = app.config.get('CHAIN_RECEIPT_TIMEOUT', 30.0)
        self.event_name = app.config.get('CHAIN_EVENT_NAME', 'PetAdded')

        if not self.enabled:
            logger.info("ChainService: CHAIN_ENABLED=false, 블록체인 기록을 사용하지 않습니다.")
            return

        if self.w3 is None:
            # HTTPProvider는 생성 시점에 연결하지 않으므로 노드가 꺼져 있어도 앱은 기동됩니다.
            self.w3 = Web3(Web3.HTTPProvider(
                app.config['CHAIN_RPC_URL'],
                request_kwargs={'timeout': app.config.get('CHAIN_RPC_TIMEOUT', 10)}
            ))

        if self.is_connected():
            logger.info(f"ChainService: Web3 connected to {app.config['CHAIN_RPC_URL']}")
        else:
            logger.error(f"ChainService: Web3 connection failed ({app.config['CHAIN_RPC_URL']})")

    def is_connected(self) -> bool:
        if not self.enabled or self.w3 is None:
            return False
        try:
            return bool(self.w3.is_connected())
        except Exception as e:
            logger.warning(f"Web3 연결 확인 중 오류: {e}")
            return False

    # ------------------------------------------------------------------
    # 컨트랙트 로드
    # ------------------------------------------------------------------
    def _load_artifact(self) -> Dict[str, Any]:
        if not self.artifact_path or not os.path.exists(self.artifact_path):
            raise ChainRecordError(f"컨트랙트 ABI 파일을 찾을 수 없습니다: {self.artifact_path}")
        with open(self.artifact_path, encoding='utf-8') as f:
            artifact = json.load(f)
        if 'abi' not in artifact:
            raise ChainRecordError(f"빌드 아티팩트에 'abi' 항목이 없습니다: {self.artifact_path}")
        return artifact

    def _resolve_address(self, artifact: Dict[str, Any]) -> str:
        """설정된 주소가 없으면 Truffle 아티팩트의 networks[<chain id>].address를 사용합니다."""
        if self.contract_address:
            return self.contract_address
        network_id = str(self.w3.eth.chain_id)
        deployed = artifact.get('networks', {}).get(network_id, {})
        if not deployed.get('address'):
            # Ganache는 chain id(1337)와 network id가 다른 경우가 있어 net_version도 확인
            deployed = artifact.get('networks', {}).get(str(self.w3.net.version), {})
        if not deployed.get('address'):
            raise ChainRecordError("CHAIN_CONTRACT_ADDRESS가 없고 아티팩트에서도 배포 주소를 찾을 수 없습니다.")
        return deployed['address']

    def get_contract(self):
        """배포된 컨트랙트 객체를 반환합니다. (최초 호출 시 로드 후 캐시)"""
        if not self.enabled or self.w3 is None:
            raise ChainRecordError("블록체인 기록이 비활성화되어 있습니다.")
        if self._contract is not None:
            return self._contract

        with self._contract_lock:
            if self._contract is None:
                try:
                    artifact = self._load_artifact()
                    address = Web3.to_checksum_address(self._resolve_address(artifact))
                    self._contract = self.w3.eth.contract(address=address, abi=artifact['abi'])
                    logger.info(f"Contract loaded at {address}")
                except ChainRecordError:
                    raise
                except Exception as e:
                    logger.error(f"컨트랙트 초기화 실패: {e}", exc_info=True)
                    raise ChainRecordError(f"컨트랙트 초기화에 실패했습니다: {e}") from e
        return self._contract

    def _has_event(self, contract, event_name: str) -> bool:
        return any(item.get('type') == 'event' and item.get('name') == event_name for item in contract.abi)

    def has_event(self, event_name: Optional[str] = None) -> bool:
        """컨트랙트 ABI에 이벤트가 정의되어 있는지 확인합니다. (컨트랙트 로드 실패 시 ChainRecordError)"""
        return self._has_event(self.get_contract(), event_name or self.event_name)

    # ------------------------------------------------------------------
    # 관리자 계정
    # ------------------------------------------------------------------
    def unlock_admin_account(self) -> str:
        """사전 충전된 관리자 계정을 일정 시간 동안 잠금 해제하고 주소를 반환합니다."""
        if self.w3 is None:
            raise ChainRecordError("Web3 클라이언트가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")
        try:
            accounts = self.w3.eth.accounts
        except Exception as e:
            raise ChainRecordError(f"계정 목록 조회에 실패했습니다: {e}") from e

        if len(accounts) <= self.admin_account_index:
            raise ChainRecordError("노드에서 관리자 계정을 찾을 수 없습니다.")
        admin_account = accounts[self.admin_account_index]

        try:
            response = self.w3.provider.make_request(
                'personal_unlockAccount', [admin_account, self.admin_passphrase, self.unlock_duration]
            )
        except Exception as e:
            raise ChainRecordError(f"관리자 계정 잠금 해제 요청 실패: {e}") from e

        if response.get('error') or not response.get('result'):
            raise ChainRecordError(f"관리자 계정 잠금 해제 실패: {response.get('error')}")

        logger.info(f"Admin account unlocked: {admin_account}")
        return admin_account

    # ------------------------------------------------------------------
    # 기록 / 이벤트
    # ------------------------------------------------------------------
    def record_decision(self, name: str, email: str, phone: str, status: str) -> Optional[Dict[str, Any]]:
        """
        관리자 결정을 addPet(name, email, phone, status)로 체인에 기록합니다.

        :return: 게시물 문서의 chain_record로 저장할 딕셔너리.
                 CHAIN_ENABLED=false이면 None.
        :raises ChainRecordError: 잠금 해제/컨트랙트 로드/트랜잭션 중 하나라도 실패한 경우
        """
        if not self.enabled:
            logger.info("CHAIN_ENABLED=false, addPet 기록을 건너뜁니다.")
            return None

        admin_account = self.unlock_admin_account()
        contract = self.get_contract()

        try:
            tx_hash = contract.functions.addPet(str(name), str(email), str(phone), str(status)).transact({
                'from': admin_account,
                'gas': self.gas_limit,
            })
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        except Exception as e:
            logger.error(f"Blockchain transaction failed: {e}", exc_info=True)
            raise ChainRecordError(f"블록체인 트랜잭션 전송에 실패했습니다: {e}") from e

        if receipt['status'] != 1:
            raise ChainRecordError(f"트랜잭션이 revert 되었습니다: {Web3.to_hex(receipt['transactionHash'])}")

        event_args = None
        if self._has_event(contract, self.event_name):
            events = getattr(contract.events, self.event_name)().process_receipt(receipt, errors=DISCARD)
            if events:
                event_args = to_jsonable(dict(events[0]['args']))

        record = {
            'tx_hash': Web3.to_hex(receipt['transactionHash']),
            'block_number': receipt['blockNumber'],
            'from_account': admin_account,
            'contract_address': contract.address,
            'event': event_args,
        }
        logger.info(f"Pet successfully added to the blockchain (tx: {record['tx_hash']}, block: {record['block_number']})")
        return record

    def latest_block(self) -> int:
        return self.w3.eth.block_number

    def get_events(self, from_block: int, to_block: int, event_name: Optional[str] = None) -> List[Dict[str, Any]]:
        """블록 범위 [from_block, to_block]의 컨트랙트 이벤트를 조회합니다."""
        contract = self.get_contract()
        event_name = event_name or self.event_name
        if not self._has_event(contract, event_name):
            raise ChainRecordError(f"컨트랙트 ABI에 '{event_name}' 이벤트가 없습니다.")

        logs = getattr(contract.events, event_name)().get_logs(from_block=from_block, to_block=to_block)
        return [
            {
                'event': log['event'],
                'args': to_jsonable(dict(log['args'])),
                'tx_hash': Web3.to_hex(log['transactionHash']),
                'block_number': log['blockNumber'],
            }
            for log in logs
        ]
