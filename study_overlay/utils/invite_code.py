import random
import re
from study_overlay.config import settings

INVITE_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

def generate_invite_code() -> str:
    suffix = ''.join(random.choice(INVITE_CODE_ALPHABET) for _ in range(settings.invite_code_length))
    return f"{settings.invite_code_prefix}{suffix}"

# Lookups are case-insensitive and whitespace-tolerant
def normalize_invite_code(code: str) -> str:
    return code.strip().upper()

def is_valid_invite_code(code: str) -> bool:
    pattern = rf"{re.escape(settings.invite_code_prefix)}[A-Z0-9]{{{settings.invite_code_length}}}"
    return re.fullmatch(pattern, code) is not None
