'''
Word duel API

Solo play:
POST /games                          -> start a game
GET  /games/{id}                     -> read state & history
POST /games/{id}/guess               -> submit a guess
GET  /stats                          -> local scoreboard
POST /stats/reset                    -> reset local scoreboard

Room store (what two duelling clients share):
POST /users                          -> create or fetch a user by name
GET  /users/{id}/stats               -> per-player statistics
POST /rooms                          -> create a room (host gets a code)
POST /rooms/join                     -> join by code
GET  /rooms/{id}                     -> room
PUT  /rooms/{id}/players/{pid}/state -> report progress
GET  /rooms/{id}/opponent            -> the other player's progress
POST /rooms/{id}/result              -> record the match result (host only)
POST /rooms/{id}/next                -> next puzzle
POST /rooms/{id}/leave               -> close the room
GET  /head-to-head                   -> scores between two players

The target word of a room is never sent over this API.
'''

import logging
from dataclasses import asdict

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import configure_logging, get_settings
from .db import get_db
from .bootstrap_db import create_all
from .dictionary import load_word_list
from .errors import (
    GuessRejected, NotAuthenticated, PersistenceError, RoomFull, RoomNotFound,
    SessionTerminal, TransportError,
)
from .repository import DBRoomStore
from .room_store import MatchParticipantState, Room
from .schemas import (
    CreateRoomRequest, GameStateOut, GuessEntryOut, GuessRequest, GuessResponse,
    HeadToHeadOut, JoinRoomRequest, MatchResultIn, MatchResultOut, NewGameResponse,
    ParticipantStateIn, ParticipantStateOut, RoomOut, StatsOut, UserIn, UserOut,
)
from .session import Guess
from .stats import PlayerStats
from .store import GameStore, SoloGame
from .types import MAX_ATTEMPTS

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Word Duel API", version="1.0.0")

# Allow everything in dev so the docs and front-end work easily
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

dictionary = load_word_list(settings.word_list_url)
solo_store = GameStore(dictionary)

# --- Dev convenience: auto-create tables locally ---
if settings.app_env == "local":
    @app.on_event("startup")
    def _dev_create_tables():
        create_all()


# --- error mapping ---

@app.exception_handler(SessionTerminal)
def _session_terminal(request: Request, exc: SessionTerminal):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(GuessRejected)
def _guess_rejected(request: Request, exc: GuessRejected):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(RoomNotFound)
def _room_not_found(request: Request, exc: RoomNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(RoomFull)
def _room_full(request: Request, exc: RoomFull):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(NotAuthenticated)
def _not_authenticated(request: Request, exc: NotAuthenticated):
    return JSONResponse(status_code=401, content={"detail": str(exc)})


@app.exception_handler(PersistenceError)
@app.exception_handler(TransportError)
def _unavailable(request: Request, exc: Exception):
    logger.warning("Store unavailable: %s", exc)
    return JSONResponse(status_code=503, content={"detail": "Storage temporarily unavailable"})


# Small factories so routes get a per-request store (bound to the current DB session)
def get_room_store(session=Depends(get_db)) -> DBRoomStore:
    return DBRoomStore(session)


def get_solo_store() -> GameStore:
    return solo_store


# --- builders ---

def _entry(guess: Guess) -> GuessEntryOut:
    return GuessEntryOut(word=guess.word, evaluation=list(guess.evaluation))


def _game_state(game: SoloGame) -> GameStateOut:
    session = game.session
    return GameStateOut(
        game_id=game.id,
        attempts_left=MAX_ATTEMPTS - session.row,
        status=session.status,
        hard_mode=session.hard_mode,
        history=[_entry(g) for g in session.guesses],
        letters=session.letter_states(),
        word=session.target if session.terminal else None,
    )


def _stats(stats: PlayerStats) -> StatsOut:
    return StatsOut(win_rate=stats.win_rate, **asdict(stats))


def _room(room: Room) -> RoomOut:
    return RoomOut(
        id=room.id,
        code=room.code,
        player1_id=room.player1_id,
        player2_id=room.player2_id,
        status=room.status,
        puzzle=room.puzzle,
    )


# ---------------- Solo routes ----------------

@app.post("/games", response_model=NewGameResponse, summary="Start a new game")
def start_game(hard_mode: bool = False, store: GameStore = Depends(get_solo_store)) -> NewGameResponse:
    game = store.create(hard_mode=hard_mode)
    return NewGameResponse(
        game_id=game.id,
        attempts_left=MAX_ATTEMPTS,
        status=game.session.status,
        hard_mode=hard_mode,
    )


@app.get("/games/{game_id}", response_model=GameStateOut, summary="Get current game state")
def get_game(game_id: str, store: GameStore = Depends(get_solo_store)) -> GameStateOut:
    game = store.get(game_id)
    if not game:
        raise HTTPException(status_code=404, detail="Game not found")
    return _game_state(game)


@app.post("/games/{game_id}/guess", response_model=GuessResponse, summary="Submit a guess")
def submit_guess(
    game_id: str,
    payload: GuessRequest,
    store: GameStore = Depends(get_solo_store),
) -> GuessResponse:
    # rejected guesses raise GuessRejected and are mapped above
    outcome = store.guess(game_id, payload.guess)
    if outcome is None:
        raise HTTPException(status_code=404, detail="Game not found")

    game = store.get(game_id)
    return GuessResponse(
        attempts_left=MAX_ATTEMPTS - outcome.row,
        status=outcome.status,
        feedback=_entry(outcome.guess),
        green_count=outcome.green_count,
        yellow_count=outcome.yellow_count,
        word=game.session.target if outcome.terminal else None,
    )


@app.get("/stats", response_model=StatsOut, summary="Get local scoreboard")
def get_stats(store: GameStore = Depends(get_solo_store)) -> StatsOut:
    return _stats(store.get_stats())


@app.post("/stats/reset", summary="Reset the local scoreboard")
def reset_stats(store: GameStore = Depends(get_solo_store)) -> dict:
    store.reset_stats()
    return {"message": "Stats reset."}


# ---------------- Room store routes ----------------

@app.post("/users", response_model=UserOut, summary="Create or fetch a user")
def login(payload: UserIn, store: DBRoomStore = Depends(get_room_store)) -> UserOut:
    try:
        user = store.create_or_get_user(payload.username)
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=str(ve))
    return UserOut(id=user.id, username=user.username)


@app.get("/users/{user_id}/stats", response_model=StatsOut, summary="Per-player statistics")
def user_stats(user_id: str, store: DBRoomStore = Depends(get_room_store)) -> StatsOut:
    store.get_user(user_id)
    return _stats(store.get_user_stats(user_id))


@app.post("/rooms", response_model=RoomOut, summary="Create a room")
def create_room(payload: CreateRoomRequest, store: DBRoomStore = Depends(get_room_store)) -> RoomOut:
    return _room(store.create_room(payload.host_id, dictionary.random_word()))


@app.post("/rooms/join", response_model=RoomOut, summary="Join a room by code")
def join_room(payload: JoinRoomRequest, store: DBRoomStore = Depends(get_room_store)) -> RoomOut:
    return _room(store.join_room(payload.code, payload.player_id))


@app.get("/rooms/{room_id}", response_model=RoomOut, summary="Get a room")
def get_room(room_id: str, store: DBRoomStore = Depends(get_room_store)) -> RoomOut:
    return _room(store.get_room(room_id))


@app.put(
    "/rooms/{room_id}/players/{player_id}/state",
    response_model=ParticipantStateOut,
    summary="Report a player's progress",
)
def report_state(
    room_id: str,
    player_id: str,
    payload: ParticipantStateIn,
    store: DBRoomStore = Depends(get_room_store),
) -> ParticipantStateOut:
    state = MatchParticipantState(participant_id=player_id, **payload.model_dump())
    saved = store.report_state(room_id, player_id, state)
    return ParticipantStateOut(**asdict(saved))


@app.get(
    "/rooms/{room_id}/opponent",
    response_model=ParticipantStateOut,
    summary="The other player's progress",
)
def opponent_state(
    room_id: str,
    player_id: str = Query(..., description="The asking player"),
    store: DBRoomStore = Depends(get_room_store),
) -> ParticipantStateOut:
    state = store.get_opponent_state(room_id, player_id)
    if state is None:
        raise HTTPException(status_code=404, detail="No opponent yet")
    return ParticipantStateOut(**asdict(state))


@app.post("/rooms/{room_id}/result", response_model=MatchResultOut, summary="Record a match result")
def save_result(
    room_id: str,
    payload: MatchResultIn,
    store: DBRoomStore = Depends(get_room_store),
) -> MatchResultOut:
    room = store.get_room(room_id)
    if payload.player1_id != room.player1_id or payload.player2_id != room.player2_id:
        raise HTTPException(status_code=400, detail="Players do not match the room")
    if payload.winner_id is not None and not room.has_player(payload.winner_id):
        raise HTTPException(status_code=400, detail="Winner did not play in this room")
    record = store.save_match_result(
        room_id,
        (payload.player1_id, payload.player2_id),
        payload.winner_id,
        (payload.player1_guesses, payload.player2_guesses),
        payload.word.lower(),
    )
    return MatchResultOut(**asdict(record))


@app.post("/rooms/{room_id}/next", response_model=RoomOut, summary="Start the next puzzle")
def next_puzzle(room_id: str, store: DBRoomStore = Depends(get_room_store)) -> RoomOut:
    return _room(store.start_next_puzzle(room_id, dictionary.random_word()))


@app.post("/rooms/{room_id}/leave", response_model=RoomOut, summary="Leave (and close) a room")
def leave_room(room_id: str, store: DBRoomStore = Depends(get_room_store)) -> RoomOut:
    return _room(store.leave_room(room_id))


@app.get("/head-to-head", response_model=HeadToHeadOut, summary="Scores between two players")
def head_to_head(
    a: str = Query(..., description="First player id"),
    b: str = Query(..., description="Second player id"),
    store: DBRoomStore = Depends(get_room_store),
) -> HeadToHeadOut:
    if a == b:
        raise HTTPException(status_code=400, detail="Pick two different players")
    return HeadToHeadOut(**asdict(store.get_head_to_head(a, b)))
