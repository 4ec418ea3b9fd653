# pawfinds/services/event_listener.py
import logging
import threading
from typing import Any, Callable, Dict, Optional

from pawfinds.services.chain_service import ChainService, ChainRecordError


def log_event(event: Dict[str, Any]) -> None:
    logging.info(f"Event received: {event['event']} {event['args']} (tx: {event['tx_hash']}, block: {event['block_number']})")


class ChainEventListener:
    """
    컨트랙트 이벤트(PetAdded)를 주기적으로 조회하여 로그로 남기는 백그라운드 리스너.
    - 프로세스당 하나의 스레드만 실행됩니다. start()를 여러 번 호출해도 스레드가 추가로 생기지 않습니다.
    - 시작 시점의 최신 블록 이후에 발생한 이벤트부터 처리합니다.
    """

    def __init__(self, chain_service: ChainService, poll_interval: float = 2.0,
                 handler: Callable[[Dict[str, Any]], None] = log_event):
        self.chain_service = chain_service
        self.poll_interval = poll_interval
        self.handler = handler
        self.next_block: Optional[int] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _event_missing(self) -> bool:
        """
        컨트랙트 ABI에 구독할 이벤트가 없으면 True.
        컨트랙트를 아직 로드할 수 없는 경우(노드/아티팩트 준비 전)는 False로 보고 폴링에서 다시 확인합니다.
        """
        try:
            return not self.chain_service.has_event()
        except ChainRecordError as e:
            logging.warning(f"Chain event listener: 컨트랙트를 아직 로드할 수 없습니다 ({e})")
            return False

    def start(self) -> bool:
        """리스너 스레드를 시작합니다. 이미 실행 중이거나 ABI에 이벤트가 없으면 False를 반환합니다."""
        with self._lock:
            if self.running:
                logging.debug("Chain event listener is already running.")
                return False

            if self._event_missing():
                logging.warning(f"컨트랙트 ABI에 '{self.chain_service.event_name}' 이벤트가 없어 이벤트 리스너를 시작하지 않습니다.")
                return False

            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run, name="chain-event-listener")
            self._thread.daemon = True  # 메인 프로세스 종료 시 함께 종료
            self._thread.start()
            logging.info(f"Chain event listener started (interval: {self.poll_interval}s)")
            return True

    def stop(self, timeout: float = 5.0):
        with self._lock:
            self._stop_event.set()
            if self._thread is not None:
                self._thread.join(timeout)
            self._thread = None
        logging.info("Chain event listener stopped.")

    def poll_once(self) -> int:
        """
        마지막으로 처리한 블록 이후의 이벤트를 한 번 조회합니다.

        :return: 처리한 이벤트 수
        """
        latest = self.chain_service.latest_block()
        if self.next_block is None:
            # 시작 시 컨트랙트를 로드하지 못했다면 여기서 이벤트 존재 여부를 한 번 더 확인
            if not self.chain_service.has_event():
                logging.warning(f"컨트랙트 ABI에 '{self.chain_service.event_name}' 이벤트가 없어 이벤트 리스너를 중지합니다.")
                self._stop_event.set()
                return 0
            # 구독과 같은 의미로, 시작 이후의 블록부터 처리
            self.next_block = latest + 1
            return 0
        if latest < self.next_block:
            return 0

        events = self.chain_service.get_events(self.next_block, latest)
        for event in events:
            try:
                self.handler(event)
            except Exception as e:
                logging.error(f"이벤트 처리 중 오류 발생 (tx: {event.get('tx_hash')}): {e}", exc_info=True)
        self.next_block = latest + 1
        return len(events)

    def _run(self):
        # 첫 조회는 바로 실행하여 시작 블록을 고정합니다.
        while True:
            try:
                self.poll_once()
            except Exception as e:
                logging.error(f"Error listening for contract events: {e}", exc_info=True)
            if self._stop_event.wait(self.poll_interval):
                break
