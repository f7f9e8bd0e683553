from types import SimpleNamespace

import pytest

from studycards.auth.passwords import hash_password
from studycards.core.errors import CannotModifySelf, DuplicateEmail, LastAdmin, UserNotFound, ValidationFailed
from studycards.models.flashcard import Flashcard
from studycards.models.user import ROLE_ADMIN, ROLE_USER, User
from studycards.services.user_service import UserService


def _user(db, email: str, role: str = ROLE_USER, cards: int = 0) -> User:
    user = User(email=email, hashed_password=hash_password('Sup3rsecret', rounds=4), role=role)
    user.flashcards = [Flashcard(front=f'front {index}', back=f'back {index}') for index in range(cards)]
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def test_get_user_reports_missing_user(db) -> None:
    with pytest.raises(UserNotFound):
        UserService(db).get_user(404)


def test_update_email_rejects_address_in_use(db) -> None:
    alice = _user(db, 'alice@example.com')
    _user(db, 'bob@example.com')

    with pytest.raises(DuplicateEmail):
        UserService(db).update_email(alice, 'BOB@example.com')


def test_update_email_normalizes_address(db) -> None:
    alice = _user(db, 'alice@example.com')

    updated = UserService(db).update_email(alice, ' Alice.New@Example.com ')

    assert updated.email == 'alice.new@example.com'


def test_list_users_paginates_and_counts_cards(db) -> None:
    _user(db, 'admin@example.com', role=ROLE_ADMIN)
    _user(db, 'alice@example.com', cards=3)
    _user(db, 'bob@example.com', cards=1)

    result = UserService(db).list_users(page=1, limit=2, role=ROLE_USER)

    assert result['pagination'] == {'page': 1, 'limit': 2, 'total': 2, 'pages': 1}
    counts = {user.email: count for user, count in result['users']}
    assert counts == {'alice@example.com': 3, 'bob@example.com': 1}


@pytest.mark.parametrize(
    ('page', 'limit', 'role'),
    [(0, 20, None), (1, 0, None), (1, 101, None), (1, 20, 'superuser')],
)
def test_list_users_validates_options(db, page: int, limit: int, role) -> None:
    with pytest.raises(ValidationFailed):
        UserService(db).list_users(page=page, limit=limit, role=role)


def test_change_role_promotes_and_revokes_tokens(db) -> None:
    admin = _user(db, 'admin@example.com', role=ROLE_ADMIN)
    alice = _user(db, 'alice@example.com')

    updated = UserService(db).change_role(admin, alice.id, ROLE_ADMIN)

    assert updated.role == ROLE_ADMIN
    assert updated.token_version == 1


def test_change_role_rejects_own_account(db) -> None:
    admin = _user(db, 'admin@example.com', role=ROLE_ADMIN)

    with pytest.raises(CannotModifySelf):
        UserService(db).change_role(admin, admin.id, ROLE_USER)


def test_change_role_keeps_last_admin(db) -> None:
    admin = _user(db, 'admin@example.com', role=ROLE_ADMIN)
    # An actor whose own admin row is gone (e.g. deleted mid-session).
    actor = SimpleNamespace(id=admin.id + 1000)

    with pytest.raises(LastAdmin):
        UserService(db).change_role(actor, admin.id, ROLE_USER)


def test_system_stats(db) -> None:
    _user(db, 'admin@example.com', role=ROLE_ADMIN)
    _user(db, 'alice@example.com', cards=2)

    stats = UserService(db).system_stats()

    assert stats == {
        'total_users': 2,
        'admin_users': 1,
        'regular_users': 1,
        'total_flashcards': 2,
        'total_reviews': 0,
    }


def test_delete_flashcards_empties_deck_but_keeps_user(db) -> None:
    admin = _user(db, 'admin@example.com', role=ROLE_ADMIN)
    alice = _user(db, 'alice@example.com', cards=3)
    bob = _user(db, 'bob@example.com', cards=1)
    service = UserService(db)

    deleted = service.delete_flashcards(admin, alice.id)

    assert deleted == 3
    assert service.flashcard_count(alice.id) == 0
    assert service.flashcard_count(bob.id) == 1
    assert db.get(User, alice.id) is not None


def test_delete_flashcards_reports_missing_user(db) -> None:
    admin = _user(db, 'admin@example.com', role=ROLE_ADMIN)

    with pytest.raises(UserNotFound):
        UserService(db).delete_flashcards(admin, 404)
