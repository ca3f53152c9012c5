"""
Tests for the HTTP shell.
"""
import pytest

from sweeper_session.server import parse_config
from sweeper_session.types import PlayMode, StateChange

CONFIG = {'config': {'width': 9, 'height': 9, 'mineCount': 10}}


@pytest.fixture
def game_id(client) -> str:
    response = client.post('/api/sessions', json=CONFIG)
    assert response.status_code == 201
    return response.get_json()['id']


class TestParseConfig:
    """Test game configuration parsing."""

    def test_valid(self) -> None:
        config = parse_config(CONFIG)
        assert (config.width, config.height, config.mine_count) == (9, 9, 10)

    @pytest.mark.parametrize('payload', [
        None,
        {},
        {'config': {'width': 9, 'height': 9}},
        {'config': {'width': 0, 'height': 9, 'mineCount': 1}},
        {'config': {'width': 3, 'height': 3, 'mineCount': 9}},
        {'config': {'width': 'wide', 'height': 3, 'mineCount': 1}},
    ])
    def test_invalid(self, payload) -> None:
        with pytest.raises(ValueError):
            parse_config(payload)


class TestSessions:
    """Test opening, reading and closing sessions."""

    def test_create_returns_snapshot(self, client) -> None:
        response = client.post('/api/sessions', json=CONFIG)
        body = response.get_json()

        assert response.status_code == 201
        assert body['session']['playMode'] == 'PENDING'
        assert body['session']['toReveal'] == 71
        assert body['session']['dangerMode'] is True

    def test_create_rejects_bad_config(self, client) -> None:
        response = client.post('/api/sessions', json={'config': {'width': 2}})
        assert response.status_code == 400
        assert 'error' in response.get_json()

    def test_get_reflects_engine_changes(self, client, runtime, game_id) -> None:
        channel = runtime.opened[0].channel
        channel.publish(StateChange(play_mode=PlayMode.PLAYING, to_reveal=60))

        body = client.get(f'/api/sessions/{game_id}').get_json()

        assert body['session']['playMode'] == 'PLAYING'
        assert body['session']['toReveal'] == 60
        assert body['session']['timerRunning'] is True

    def test_unknown_session(self, client) -> None:
        assert client.get('/api/sessions/nope').status_code == 404
        assert client.post('/api/sessions/nope/restart').status_code == 404

    def test_delete_deactivates(self, client, runtime, game_id) -> None:
        response = client.delete(f'/api/sessions/{game_id}')

        assert response.status_code == 204
        assert runtime.closed[0].session.active is False
        assert client.get(f'/api/sessions/{game_id}').status_code == 404

    def test_health(self, client, game_id) -> None:
        body = client.get('/api/health').get_json()
        assert body['status'] == 'OK'
        assert body['sessions'] == 1


class TestInput:
    """Test clicks, the danger mode toggle and restart over HTTP."""

    def test_click_reveals_in_danger_mode(self, client, runtime, game_id) -> None:
        response = client.post(f'/api/sessions/{game_id}/clicks', json={'x': 3, 'y': 4})

        assert response.status_code == 200
        assert response.get_json()['command'] == {'kind': 'reveal', 'x': 3, 'y': 4}
        assert runtime.opened[0].session.engine.calls == [('reveal', 3, 4)]

    def test_alt_click_flags(self, client, game_id) -> None:
        response = client.post(f'/api/sessions/{game_id}/clicks', json={'x': 3, 'y': 4, 'alt': True})
        assert response.get_json()['command']['kind'] == 'flag'

    def test_chord_click(self, client, game_id) -> None:
        payload = {'x': 1, 'y': 1, 'revealed': True, 'touchingMines': 2, 'touchingFlags': 2}
        response = client.post(f'/api/sessions/{game_id}/clicks', json=payload)
        assert response.get_json()['command']['kind'] == 'reveal_surrounding'

    @pytest.mark.parametrize('payload', [{}, {'x': -1, 'y': 0}, {'x': 'a', 'y': 0}, {'x': 0, 'y': 0, 'touchingMines': True},
                                         {'x': 0, 'y': 0, 'revealed': 'false'}, {'x': 0, 'y': 0, 'alt': 'yes'}])
    def test_bad_click(self, client, game_id, payload) -> None:
        response = client.post(f'/api/sessions/{game_id}/clicks', json=payload)
        assert response.status_code == 400

    def test_toggle_to_flag_mode(self, client, game_id) -> None:
        response = client.post(f'/api/sessions/{game_id}/danger-mode', json={'flag': True})
        assert response.get_json()['session']['dangerMode'] is False

        click = client.post(f'/api/sessions/{game_id}/clicks', json={'x': 0, 'y': 0})
        assert click.get_json()['command']['kind'] == 'flag'

    def test_toggle_requires_boolean(self, client, game_id) -> None:
        response = client.post(f'/api/sessions/{game_id}/danger-mode', json={'flag': 'yes'})
        assert response.status_code == 400

    def test_restart(self, client, runtime, game_id) -> None:
        entry = runtime.opened[0]
        entry.channel.publish(StateChange(play_mode=PlayMode.LOST, to_reveal=12))

        body = client.post(f'/api/sessions/{game_id}/restart').get_json()

        assert entry.session.engine.calls == [('reset',)]
        assert body['session']['playMode'] == 'PENDING'
        assert body['session']['toReveal'] == 71
