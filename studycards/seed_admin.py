"""Create or promote the initial admin account.

Usage:
    ADMIN_EMAIL=admin@example.com ADMIN_PASSWORD=... python -m studycards.seed_admin
"""
import logging
import sys

from sqlalchemy.orm import Session

from studycards.auth.passwords import hash_password, password_errors
from studycards.core.config import Settings, load_settings
from studycards.database import build_engine, build_session_factory, init_schema
from studycards.models.user import ROLE_ADMIN, User
from studycards.services.auth_service import normalize_email

logger = logging.getLogger(__name__)


def seed_admin(db: Session, settings: Settings) -> User:
    email = normalize_email(settings.admin_email)
    user = db.query(User).filter(User.email == email).first()

    if user is None:
        user = User(
            email=email,
            hashed_password=hash_password(settings.admin_password, settings.bcrypt_rounds),
            role=ROLE_ADMIN,
        )
        db.add(user)
        logger.info('Created admin account %s', email)
    elif user.role != ROLE_ADMIN:
        user.role = ROLE_ADMIN
        user.token_version = (user.token_version or 0) + 1
        logger.info('Promoted %s to admin', email)
    else:
        logger.info('Admin account %s already exists', email)

    db.commit()
    db.refresh(user)
    return user


def main() -> None:
    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(name)s: %(message)s')
    settings = load_settings()

    if not settings.admin_email or not settings.admin_password:
        print('ADMIN_EMAIL and ADMIN_PASSWORD must be set.', file=sys.stderr)
        sys.exit(1)

    errors = password_errors(settings.admin_password)
    if errors:
        print('ADMIN_PASSWORD is too weak:', '; '.join(errors), file=sys.stderr)
        sys.exit(1)

    engine = build_engine(settings)
    init_schema(engine)
    db = build_session_factory(engine)()
    try:
        user = seed_admin(db, settings)
    finally:
        db.close()
        engine.dispose()

    print(f'Admin ready: {user.email} (id={user.id})')


if __name__ == '__main__':
    main()
