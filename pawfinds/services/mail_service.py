# pawfinds/services/mail_service.py
import logging
from typing import Optional
from flask import Flask
from flask_mail import Mail, Message

from pawfinds.models.pet_listing import PetListing

# Flask-Mail 확장 객체. init_app()에서 앱에 바인딩됩니다.
mail = Mail()

SIGNATURE = "Best regards,\nThe PawFinds Team"


class MailService:
    """
    게시물 상태 변화에 따라 신청자에게 안내 메일을 보내는 공용 서비스 클래스.
    - 모든 발송은 best-effort: 실패는 로그만 남기고 호출자에게 전파하지 않습니다.
    """

    def __init__(self):
        self.default_sender: Optional[str] = None

    def init_app(self, app: Flask):
        mail.init_app(app)
        self.default_sender = app.config.get('MAIL_DEFAULT_SENDER') or app.config.get('MAIL_USERNAME')
        if not self.default_sender:
            logging.warning("MailService: 발신자 주소(EMAIL_USER)가 설정되지 않아 메일 발송이 실패할 수 있습니다.")

    def _send(self, recipient: str, subject: str, body: str) -> bool:
        """메일 한 통을 발송합니다. 성공 여부를 반환하며 예외는 전파하지 않습니다."""
        if not recipient:
            logging.warning(f"수신자 주소가 없어 메일을 보내지 않습니다: {subject}")
            return False
        try:
            message = Message(subject=subject, recipients=[recipient], body=body, sender=self.default_sender)
            mail.send(message)
            logging.info(f"Mail sent to {recipient}: {subject}")
            return True
        except Exception as e:
            logging.error(f"메일 발송 실패 (to: {recipient}, subject: {subject}): {e}", exc_info=True)
            return False

    def send_submission_received(self, listing: PetListing) -> bool:
        body = (
            f"Dear {listing.name},\n\n"
            "Thank you for submitting your pet to PawFinds for adoption.\n\n"
            "We have received your request, and our admin team is currently reviewing it. "
            "Once approved, your pet will be listed on our platform, making it available for adoption "
            "by our community of pet lovers.\n\n"
            "We appreciate your patience and will notify you once your pet's listing is live.\n\n"
            "If you have any questions or need assistance, feel free to contact us.\n\n"
            f"{SIGNATURE}"
        )
        return self._send(listing.email, "Pet Submission Received - PawFinds", body)

    def send_listing_approved(self, listing: PetListing) -> bool:
        body = (
            f"Dear {listing.name} Owner,\n\n"
            "Great news! Your pet has been approved and is now live on the PawFinds platform.\n\n"
            f"{SIGNATURE}"
        )
        return self._send(listing.email, "Your Pet is Now Live on PawFinds!", body)

    def send_listing_rejected(self, listing: PetListing) -> bool:
        body = (
            f"Dear {listing.name} Owner,\n\n"
            "Thank you for your submission. After review, our admin team was unable to approve "
            "your pet's listing on the PawFinds platform.\n\n"
            "If you have any questions, feel free to contact us.\n\n"
            f"{SIGNATURE}"
        )
        return self._send(listing.email, "Pet Submission Not Approved - PawFinds", body)

    def send_listing_removed(self, listing: PetListing) -> bool:
        body = (
            f"Dear {listing.name},\n\n"
            "We wanted to inform you that your pet submission has been removed from the PawFinds "
            "platform by our admin team.\n\n"
            f"{SIGNATURE}"
        )
        return self._send(listing.email, "Pet Submission Removed - PawFinds", body)
