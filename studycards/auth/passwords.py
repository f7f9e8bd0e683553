import re

import bcrypt

from studycards.core.errors import ValidationFailed


MIN_PASSWORD_LENGTH = 8
# bcrypt ignores anything past 72 bytes.
MAX_PASSWORD_BYTES = 72

COMMON_PASSWORDS = {
    'password', '12345678', '123456789', 'qwertyui', 'password1',
    'password123', 'iloveyou', 'welcome1', 'admin123', 'letmein1',
}


def password_errors(password: str) -> list[str]:
    errors: list[str] = []

    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f'Password must be at least {MIN_PASSWORD_LENGTH} characters long.')
    if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
        errors.append(f'Password must be at most {MAX_PASSWORD_BYTES} bytes long.')
    if not re.search(r'[a-z]', password):
        errors.append('Password must contain at least one lowercase letter.')
    if not re.search(r'[A-Z0-9]', password):
        errors.append('Password must contain at least one uppercase letter or number.')
    if password.lower() in COMMON_PASSWORDS:
        errors.append('Password is too common.')

    return errors


def validate_password(password: str, field: str = 'password') -> None:
    errors = password_errors(password)
    if errors:
        raise ValidationFailed(
            'Password does not meet requirements.',
            errors=[{'field': field, 'message': message} for message in errors],
        )


def hash_password(password: str, rounds: int = 12) -> str:
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), hashed_password.encode('utf-8'))
    except ValueError:
        # Malformed stored hash or an over-long candidate.
        return False
