def _names(events):
    return [e['name'] for e in events]


def test_socket_connect_and_ping(sio_client):
    # Ensure we are connected to /ws
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')
    assert 'connected' in _names(sio_client.get_received('/ws'))

    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(e['name'] == 'pong' and e['args'][0] == {'n': 1} for e in received)


def test_join_round_requires_known_round(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('join_round', {}, namespace='/ws')
    sio_client.emit('join_round', {'round_id': 'missing'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert _names(received) == ['error', 'error']


def test_round_updates_reach_joined_socket(client, sio_client):
    round_id = client.post('/api/rounds', json={'gameId': 'decode'}).get_json()['round']['id']
    sio_client.get_received('/ws')
    sio_client.emit('join_round', {'round_id': round_id}, namespace='/ws')
    joined = sio_client.get_received('/ws')
    assert joined[0]['name'] == 'joined'
    assert joined[0]['args'][0]['room'] == f'round:{round_id}'

    client.post(f'/api/rounds/{round_id}/tick')
    updates = [e for e in sio_client.get_received('/ws') if e['name'] == 'round_update']
    assert updates and updates[-1]['args'][0]['countdown'] == 2

    sio_client.emit('leave_round', {'round_id': round_id}, namespace='/ws')
    assert 'left' in _names(sio_client.get_received('/ws'))
    client.post(f'/api/rounds/{round_id}/tick')
    assert 'round_update' not in _names(sio_client.get_received('/ws'))


def test_device_room_gets_scores_and_tier_changes(client, sio_client):
    sio_client.get_received('/ws')
    client.put('/api/subscription', json={'tier': 'standard'})
    received = sio_client.get_received('/ws')
    assert any(e['name'] == 'tier_changed' and e['args'][0] == {'tier': 'standard'} for e in received)

    round_id = client.post('/api/rounds', json={'gameId': 'decode'}).get_json()['round']['id']
    for _ in range(3):
        client.post(f'/api/rounds/{round_id}/tick')
    client.post(f'/api/rounds/{round_id}/guess', json={'pegs': [1, 1, 2, 2, 3]})
    names = _names(sio_client.get_received('/ws'))
    assert 'score_saved' in names
    assert 'completion_marked' in names
    assert 'round_over' in names


def test_owner_disconnect_abandons_round(flask_app, client, sio_client):
    from decode_daily import socketio as _sio
    round_id = client.post('/api/rounds', json={'gameId': 'anagrams'}).get_json()['round']['id']

    owner = _sio.test_client(flask_app, namespace='/ws')
    owner.emit('join_round', {'round_id': round_id}, namespace='/ws')
    sio_client.get_received('/ws')  # flush

    owner.disconnect(namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(e['name'] == 'round_abandoned' and e['args'][0]['roundId'] == round_id for e in received)

    assert client.get(f'/api/rounds/{round_id}').status_code == 404
    assert client.get('/api/scores').get_json() == []
