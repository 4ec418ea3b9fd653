# pawfinds/services/storage_service.py
import os
import uuid
import logging
from typing import Optional
from flask import Flask
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename


class StorageService:
    """
    업로드된 반려동물 사진을 서버의 고정 디렉터리(UPLOAD_FOLDER)에 저장/삭제하는 서비스 클래스입니다.
    """

    def __init__(self):
        """실제 저장 디렉터리는 init_app 메서드를 통해 주입됩니다."""
        self.upload_folder: Optional[str] = None
        self.allowed_extensions = set()

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 호출되어 저장 디렉터리를 설정하고, 없으면 생성합니다.

        :param app: Flask 애플리케이션 객체
        """
        upload_folder = app.config.get('UPLOAD_FOLDER')
        if not upload_folder:
            raise ValueError("UPLOAD_FOLDER 설정이 .env 또는 설정 파일에 필요합니다.")

        self.upload_folder = os.path.abspath(upload_folder)
        self.allowed_extensions = {ext.lower() for ext in app.config.get('ALLOWED_IMAGE_EXTENSIONS', ())}
        os.makedirs(self.upload_folder, exist_ok=True)
        logging.info(f"StorageService: 업로드 디렉터리 초기화 완료 ({self.upload_folder})")

    def _ensure_initialized(self):
        if not self.upload_folder:
            raise RuntimeError("StorageService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")

    def _resolve(self, filename: str) -> str:
        """파일명을 업로드 디렉터리 내부의 절대 경로로 변환합니다. (디렉터리 밖을 가리키면 ValueError)"""
        path = os.path.abspath(os.path.join(self.upload_folder, filename))
        if os.path.dirname(path) != self.upload_folder:
            raise ValueError(f"허용되지 않는 파일 경로입니다: {filename}")
        return path

    def save_upload(self, file: Optional[FileStorage]) -> str:
        """
        업로드된 이미지를 고유한 이름으로 저장하고, 저장된 파일명을 반환합니다.

        :param file: request.files에서 꺼낸 FileStorage 객체
        :return: UPLOAD_FOLDER 기준 파일명 (예: '3f2c...e1.jpg')
        """
        self._ensure_initialized()
        if file is None or not file.filename:
            raise ValueError("업로드할 사진 파일(picture)이 필요합니다.")

        original_name = secure_filename(file.filename)
        extension = original_name.rsplit('.', 1)[-1].lower() if '.' in original_name else ''
        if extension not in self.allowed_extensions:
            raise ValueError(f"'{extension or original_name}'은(는) 허용되지 않는 이미지 형식입니다.")

        unique_filename = f"{uuid.uuid4().hex}.{extension}"
        file.save(self._resolve(unique_filename))
        logging.info(f"Upload saved: {unique_filename} (original: {original_name})")
        return unique_filename

    def delete_upload(self, filename: Optional[str]) -> bool:
        """
        저장된 파일을 삭제합니다.

        :return: 실제로 파일을 삭제했으면 True, 파일이 없었으면 False
        """
        self._ensure_initialized()
        if not filename:
            return False

        path = self._resolve(filename)
        if not os.path.exists(path):
            logging.warning(f"삭제할 업로드 파일이 존재하지 않습니다: {filename}")
            return False

        os.remove(path)
        logging.info(f"Upload deleted: {filename}")
        return True

    def exists(self, filename: str) -> bool:
        self._ensure_initialized()
        return os.path.exists(self._resolve(filename))
