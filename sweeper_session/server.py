"""Flask server exposing game sessions to the browser."""
import asyncio
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Coroutine, Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from temporalio.client import Client

from sweeper_session.channel import ChangeChannel
from sweeper_session.config import Settings, get_temporal_client
from sweeper_session.controller import DangerModeFlag, GameSession, init_process
from sweeper_session.engine import WorkflowEngineHandle
from sweeper_session.feed import WorkflowChangeFeed
from sweeper_session.types import CellSnapshot, GameConfig

logger = logging.getLogger(__name__)


@dataclass
class SessionEntry:
    game_id: str
    session: GameSession
    channel: ChangeChannel
    feed: Optional[WorkflowChangeFeed] = None

    def restart(self) -> None:
        """Restart the game and make the feed resend the full engine state."""
        self.session.on_restart()
        if self.feed is not None:
            self.feed.reset()


class EngineRuntime:
    """Owns the asyncio loop thread every Temporal call runs on."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.loop = asyncio.new_event_loop()
        self.client: Client | None = None
        self._thread = threading.Thread(target=self.loop.run_forever, name="engine-loop", daemon=True)

    def start(self) -> None:
        self._thread.start()
        self.client = self.run(get_temporal_client(self.settings))
        logger.info("Connected to Temporal server")

    def run(self, coro: Coroutine) -> Any:
        """Run a coroutine on the engine loop and wait for its result."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result()

    async def _start_game(self, game_id: str, config: GameConfig):
        return await self.client.start_workflow(
            self.settings.workflow_name,
            args=[game_id, config],
            id=game_id,
            task_queue=self.settings.task_queue
        )

    def open_session(self, config: GameConfig, danger_mode: DangerModeFlag) -> SessionEntry:
        game_id = str(uuid.uuid4())
        handle = self.run(self._start_game(game_id, config))

        channel = ChangeChannel(self.loop)
        engine = WorkflowEngineHandle(handle, config, self.loop)
        feed = WorkflowChangeFeed(handle, channel, self.settings.poll_interval)
        session = GameSession(
            engine,
            channel.subscribe,
            channel.unsubscribe,
            danger_mode,
            config.to_reveal_total,
            width=config.width,
            height=config.height,
            on_update=lambda state: logger.debug(f"Game {game_id} state: {state}")
        )
        session.activate()
        asyncio.run_coroutine_threadsafe(feed.run(), self.loop)
        return SessionEntry(game_id, session, channel, feed)

    def close_session(self, entry: SessionEntry) -> None:
        entry.session.deactivate()
        if entry.feed is not None:
            self.loop.call_soon_threadsafe(entry.feed.stop)


def parse_config(data: Optional[Dict[str, Any]]) -> GameConfig:
    config_data = (data or {}).get('config')
    if not config_data or 'width' not in config_data or 'height' not in config_data or 'mineCount' not in config_data:
        raise ValueError('Invalid game configuration')
    try:
        return GameConfig(
            width=int(config_data['width']),
            height=int(config_data['height']),
            mine_count=int(config_data['mineCount'])
        )
    except (TypeError, ValueError) as error:
        raise ValueError(f'Invalid game configuration: {error}') from error


def create_app(runtime, danger_mode: Optional[DangerModeFlag] = None) -> Flask:
    """Build the HTTP shell around `runtime`.

    `runtime` only needs open_session(config, danger_mode) and
    close_session(entry).
    """
    app = Flask(__name__)
    CORS(app)

    danger_mode = danger_mode or DangerModeFlag()
    sessions: Dict[str, SessionEntry] = {}
    app.extensions['sweeper_sessions'] = sessions

    def not_found(game_id):
        return jsonify({'error': f'Game {game_id} not found'}), 404

    @app.route('/api/sessions', methods=['POST'])
    def create_session():
        """Start a game and a session mirroring it."""
        try:
            config = parse_config(request.get_json(silent=True))
        except ValueError as error:
            return jsonify({'error': str(error)}), 400

        try:
            entry = runtime.open_session(config, danger_mode)
        except Exception as error:
            logger.error(f"Error creating game: {error}")
            return jsonify({'error': 'Failed to create game'}), 500

        sessions[entry.game_id] = entry
        logger.info(f"Opened session for game {entry.game_id}")
        return jsonify({'id': entry.game_id, 'session': entry.session.snapshot()}), 201

    @app.route('/api/sessions/<game_id>', methods=['GET'])
    def get_session(game_id):
        entry = sessions.get(game_id)
        if entry is None:
            return not_found(game_id)
        return jsonify({'id': game_id, 'session': entry.session.snapshot()})

    @app.route('/api/sessions/<game_id>/clicks', methods=['POST'])
    def click(game_id):
        """Resolve a click on a cell and send the resulting command."""
        entry = sessions.get(game_id)
        if entry is None:
            return not_found(game_id)

        data = request.get_json(silent=True) or {}
        try:
            cell = CellSnapshot.from_dict(data)
        except ValueError as error:
            return jsonify({'error': str(error)}), 400

        alt = data.get('alt', False)
        if not isinstance(alt, bool):
            return jsonify({'error': "'alt' must be a boolean"}), 400

        command = entry.session.on_cell_click(cell, alt=alt)
        return jsonify({
            'command': {'kind': command.kind.value, 'x': command.x, 'y': command.y},
            'session': entry.session.snapshot()
        })

    @app.route('/api/sessions/<game_id>/danger-mode', methods=['POST'])
    def toggle_danger_mode(game_id):
        entry = sessions.get(game_id)
        if entry is None:
            return not_found(game_id)

        data = request.get_json(silent=True) or {}
        if not isinstance(data.get('flag'), bool):
            return jsonify({'error': "'flag' must be a boolean"}), 400

        entry.session.on_danger_mode_toggle(data['flag'])
        return jsonify({'session': entry.session.snapshot()})

    @app.route('/api/sessions/<game_id>/restart', methods=['POST'])
    def restart(game_id):
        entry = sessions.get(game_id)
        if entry is None:
            return not_found(game_id)

        entry.restart()
        return jsonify({'session': entry.session.snapshot()})

    @app.route('/api/sessions/<game_id>', methods=['DELETE'])
    def close_session(game_id):
        entry = sessions.pop(game_id, None)
        if entry is None:
            return not_found(game_id)

        runtime.close_session(entry)
        logger.info(f"Closed session for game {game_id}")
        return '', 204

    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        return jsonify({
            'status': 'OK',
            'sessions': len(sessions),
            'timestamp': datetime.now().isoformat()
        })

    return app


def main():
    """Start the Flask server."""
    init_process()
    try:
        settings = Settings.from_env()
        runtime = EngineRuntime(settings)
        runtime.start()

        app = create_app(runtime, DangerModeFlag(settings.danger_mode))
        logger.info(f"Minesweeper session server running on http://localhost:{settings.port}")
        app.run(host='0.0.0.0', port=settings.port, debug=False)

    except Exception as error:
        logger.error(f"Failed to start server: {error}")
        exit(1)


if __name__ == "__main__":
    main()
