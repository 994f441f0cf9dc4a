"""
撮合服务边界层
HTTP接口与WebSocket推送，只负责请求解析、错误转换与事件投递
"""

import json
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from courtqueue.core.errors import (
    AlreadyActiveError,
    InsufficientEntriesError,
    InvalidOutcomeError,
    InvalidRequestError,
    MatchmakingError,
    NotQueuedError,
    ParticipantNotFoundError,
    SessionNotFoundError,
)
from courtqueue.core.leaderboard import build_leaderboard, export_results
from courtqueue.core.matchmaking import MatchmakingCore
from courtqueue.infra.config import ConfigManager
from courtqueue.infra.notifier import Broadcaster
from courtqueue.utils.logger import get_logger

logger = get_logger(__name__)

ERROR_STATUS = {
    InvalidRequestError: 400,
    InvalidOutcomeError: 400,
    ParticipantNotFoundError: 404,
    SessionNotFoundError: 404,
    AlreadyActiveError: 409,
    NotQueuedError: 409,
    InsufficientEntriesError: 409,
}


class JoinRequest(BaseModel):
    name: str = ''


class CompleteSessionRequest(BaseModel):
    winner_ids: List[str] = Field(default_factory=list)


def create_app(
    config_manager: Optional[ConfigManager] = None,
    core: Optional[MatchmakingCore] = None,
    broadcaster: Optional[Broadcaster] = None,
) -> FastAPI:
    """创建撮合服务应用"""
    config_manager = config_manager or ConfigManager.from_dict({})
    core = core or MatchmakingCore.from_config(config_manager)
    broadcaster = broadcaster or Broadcaster()
    export_settings = config_manager.get_export_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await broadcaster.drain()
        if export_settings['on_shutdown']:
            export_results(core, export_settings['output_dir'])

    app = FastAPI(title="courtqueue", lifespan=lifespan)
    app.state.core = core
    app.state.broadcaster = broadcaster

    cors_origins = config_manager.get_server_settings()['cors_origins']
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=["GET", "POST", "DELETE"],
            allow_headers=["*"],
        )

    @app.exception_handler(MatchmakingError)
    async def matchmaking_error_handler(request: Request, exc: MatchmakingError):
        status_code = ERROR_STATUS.get(type(exc), 400)
        logger.warning(f"{request.method} {request.url.path} 被拒绝: {exc.code} - {exc.message}")
        return JSONResponse(
            status_code=status_code,
            content={'success': False, 'code': exc.code, 'message': exc.message},
        )

    @app.get("/api/status")
    async def get_status():
        return core.status()

    @app.post("/api/queue/join")
    async def join_queue(body: JoinRequest):
        result = core.admit(body.name)
        broadcaster.publish(result.events)
        participant = result.value['participant']
        return {
            'success': True,
            'position': result.value['position'],
            'participant': participant.to_dict(),
        }

    @app.post("/api/queue/rejoin/{participant_id}")
    async def rejoin_queue(participant_id: str):
        result = core.rejoin(participant_id)
        broadcaster.publish(result.events)
        return {
            'success': True,
            'position': result.value['position'],
            'participant': result.value['participant'].to_dict(),
        }

    @app.delete("/api/queue/{participant_id}")
    async def leave_queue(participant_id: str):
        result = core.withdraw(participant_id)
        broadcaster.publish(result.events)
        return {'success': True, 'participant': result.value.to_dict()}

    @app.post("/api/sessions")
    async def create_session():
        result = core.form_session()
        broadcaster.publish(result.events)
        return {'success': True, 'session': result.value.to_dict()}

    @app.post("/api/sessions/{session_id}/complete")
    async def complete_session(session_id: str, body: CompleteSessionRequest):
        result = core.resolve_session(session_id, body.winner_ids)
        broadcaster.publish(result.events)
        return {'success': True, 'session': result.value.to_dict()}

    @app.get("/api/sessions/history")
    async def session_history():
        return {'sessions': core.session_history()}

    @app.get("/api/participants/{participant_id}")
    async def get_participant(participant_id: str):
        return core.get_participant(participant_id)

    @app.get("/api/leaderboard")
    async def leaderboard():
        df = build_leaderboard(core.participants())
        return {'leaderboard': json.loads(df.to_json(orient='records'))}

    @app.websocket("/ws")
    async def observer(websocket: WebSocket):
        await broadcaster.connect(websocket, core.status())
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            broadcaster.disconnect(websocket)

    return app
