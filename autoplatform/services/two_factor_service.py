import secrets

import bcrypt
import pyotp

from ..models.security_model import TwoFactorAuth
from ..utils.logger import Log

BACKUP_CODE_COUNT = 10
VERIFY_WINDOW = 2


class TwoFactorService:
    """TOTP enrolment and verification backed by the two_factor_auth collection."""

    @staticmethod
    def generate_backup_codes(count=BACKUP_CODE_COUNT):
        return [secrets.token_hex(4).upper() for _ in range(count)]

    @staticmethod
    def hash_code(code):
        return bcrypt.hashpw(code.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    @staticmethod
    def setup(user, issuer):
        """
        Create (or replace) an unconfirmed TOTP secret for the user.
        Plain backup codes are returned once and only hashes are stored.
        """
        user_id = str(user["_id"])
        secret = pyotp.random_base32()
        backup_codes = TwoFactorService.generate_backup_codes()

        TwoFactorAuth.upsert_secret(
            user_id,
            secret,
            [TwoFactorService.hash_code(code) for code in backup_codes],
        )
        Log.info(f"[two_factor_service.py][TwoFactorService][setup][user:{user_id}] secret issued")

        otpauth_url = pyotp.TOTP(secret).provisioning_uri(name=user.get("email"), issuer_name=issuer)
        return {"secret": secret, "otpauthUrl": otpauth_url, "backupCodes": backup_codes}

    @staticmethod
    def verify_totp(secret, token):
        if not secret or not token:
            return False
        return pyotp.TOTP(secret).verify(str(token).strip(), valid_window=VERIFY_WINDOW)

    @staticmethod
    def consume_backup_code(record, code):
        """
        Accept an unused backup code and remove it from the stored list.
        The removal is conditional, so a code can be redeemed only once.
        """
        if not code:
            return False
        code = str(code).strip().upper()
        for hashed in record.get("backupCodes") or []:
            if bcrypt.checkpw(code.encode("utf-8"), hashed.encode("utf-8")):
                return TwoFactorAuth.pull_backup_code(record["userId"], hashed)
        return False

    @staticmethod
    def verify_for_user(user_id, token, allow_backup=True):
        """
        Check a code against an enabled enrolment. Returns True when valid.
        """
        record = TwoFactorAuth.get_for_user(user_id)
        if not record or not record.get("isEnabled"):
            return False
        if TwoFactorService.verify_totp(record.get("secret"), token):
            return True
        return allow_backup and TwoFactorService.consume_backup_code(record, token)

    @staticmethod
    def is_enabled(user_id):
        record = TwoFactorAuth.get_for_user(user_id)
        return bool(record and record.get("isEnabled"))
