import pytest


@pytest.fixture
def alice(register_user, bearer) -> dict:
    return bearer(register_user('alice@example.com')['access_token'])


@pytest.fixture
def bob(register_user, bearer) -> dict:
    return bearer(register_user('bob@example.com')['access_token'])


def _create(client, headers: dict, front: str = 'house', back: str = 'casa') -> dict:
    response = client.post('/api/flashcards', json={'front': front, 'back': back}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()['flashcard']


def test_flashcards_require_authentication(client) -> None:
    response = client.get('/api/flashcards')

    assert response.status_code == 401
    assert response.json()['error'] == 'UNAUTHORIZED'


def test_create_and_fetch_flashcard(client, alice: dict) -> None:
    card = _create(client, alice)

    response = client.get(f"/api/flashcards/{card['id']}", headers=alice)

    assert response.status_code == 200
    body = response.json()['flashcard']
    assert body['front'] == 'house'
    assert body['back'] == 'casa'
    assert body['ease_factor'] == 2.5
    assert body['repetitions'] == 0


def test_create_rejects_blank_text(client, alice: dict) -> None:
    response = client.post('/api/flashcards', json={'front': '   ', 'back': 'casa'}, headers=alice)

    assert response.status_code == 400
    assert response.json()['errors'] == [{'field': 'front', 'message': 'Text cannot be empty.'}]


def test_list_only_returns_callers_cards(client, alice: dict, bob: dict) -> None:
    _create(client, alice, 'house', 'casa')
    _create(client, alice, 'dog', 'perro')
    _create(client, bob, 'cat', 'gato')

    response = client.get('/api/flashcards', headers=bob)

    assert response.status_code == 200
    body = response.json()
    assert body['count'] == 1
    assert [card['front'] for card in body['flashcards']] == ['cat']


def test_other_users_card_is_not_found(client, alice: dict, bob: dict) -> None:
    card = _create(client, alice)
    path = f"/api/flashcards/{card['id']}"

    responses = [
        client.get(path, headers=bob),
        client.put(path, json={'front': 'mine now'}, headers=bob),
        client.delete(path, headers=bob),
        client.post(f'{path}/review', json={'quality': 5}, headers=bob),
    ]

    for response in responses:
        assert response.status_code == 404
        assert response.json()['error'] == 'FLASHCARD_NOT_FOUND'
    assert client.get(path, headers=alice).json()['flashcard']['front'] == 'house'


def test_update_flashcard(client, alice: dict) -> None:
    card = _create(client, alice)

    response = client.put(f"/api/flashcards/{card['id']}", json={'back': 'hogar'}, headers=alice)

    assert response.status_code == 200
    assert response.json()['flashcard']['front'] == 'house'
    assert response.json()['flashcard']['back'] == 'hogar'


def test_update_requires_a_field(client, alice: dict) -> None:
    card = _create(client, alice)

    response = client.put(f"/api/flashcards/{card['id']}", json={}, headers=alice)

    assert response.status_code == 400


def test_delete_flashcard(client, alice: dict) -> None:
    card = _create(client, alice)

    response = client.delete(f"/api/flashcards/{card['id']}", headers=alice)

    assert response.status_code == 200
    assert client.get(f"/api/flashcards/{card['id']}", headers=alice).status_code == 404


def test_review_with_quality_score(client, alice: dict) -> None:
    card = _create(client, alice)

    response = client.post(f"/api/flashcards/{card['id']}/review", json={'quality': 5}, headers=alice)

    assert response.status_code == 200
    body = response.json()
    assert body['review'] == {
        'quality': 5,
        'passed': True,
        'interval_days': 1,
        'next_review': body['flashcard']['next_review'],
    }
    assert body['flashcard']['repetitions'] == 1
    assert body['flashcard']['ease_factor'] == 2.6


def test_review_with_incorrect_flag_resets_card(client, alice: dict) -> None:
    card = _create(client, alice)
    path = f"/api/flashcards/{card['id']}/review"
    client.post(path, json={'correct': True}, headers=alice)
    client.post(path, json={'correct': True}, headers=alice)

    response = client.post(path, json={'correct': False}, headers=alice)

    body = response.json()
    assert body['review']['passed'] is False
    assert body['flashcard']['repetitions'] == 0
    assert body['flashcard']['last_interval'] == 1
    assert body['flashcard']['review_count'] == 3


@pytest.mark.parametrize('payload', [{}, {'quality': 6}, {'quality': -1}, {'quality': '5'}, {'quality': 2.5}])
def test_review_rejects_invalid_grade(client, alice: dict, payload: dict) -> None:
    card = _create(client, alice)

    response = client.post(f"/api/flashcards/{card['id']}/review", json=payload, headers=alice)

    assert response.status_code == 400
    assert response.json()['error'] == 'VALIDATION_FAILED'


def test_due_lists_new_cards_until_reviewed(client, alice: dict) -> None:
    card = _create(client, alice)

    before = client.get('/api/flashcards/due', headers=alice).json()
    client.post(f"/api/flashcards/{card['id']}/review", json={'quality': 4}, headers=alice)
    after = client.get('/api/flashcards/due', headers=alice).json()

    assert [due['id'] for due in before['new']] == [card['id']]
    assert before['total_due'] == 1
    assert after['total_due'] == 0


def test_bulk_import(client, alice: dict) -> None:
    response = client.post(
        '/api/flashcards/import',
        json={'flashcards': [{'front': 'house', 'back': 'casa'}, {'front': 'dog'}]},
        headers=alice,
    )

    assert response.status_code == 201
    body = response.json()
    assert body['total_processed'] == 2
    assert [entry['index'] for entry in body['imported']] == [0]
    assert body['failed'] == [{'index': 1, 'errors': [{'field': 'back', 'message': 'Field is required.'}]}]


def test_my_stats(client, alice: dict) -> None:
    _create(client, alice)

    response = client.get('/api/users/me/stats', headers=alice)

    assert response.status_code == 200
    assert response.json()['stats']['total_flashcards'] == 1
    assert response.json()['stats']['new_flashcards'] == 1
