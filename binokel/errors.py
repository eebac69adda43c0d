"""Domain errors raised while validating player commands."""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional


class ErrorCode(Enum):
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    SESSION_FULL = "SESSION_FULL"
    NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
    GAME_ALREADY_STARTED = "GAME_ALREADY_STARTED"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    GAME_STATE_NOT_INITIALIZED = "GAME_STATE_NOT_INITIALIZED"
    NOT_IN_BIDDING_PHASE = "NOT_IN_BIDDING_PHASE"
    NOT_YOUR_TURN_TO_BID = "NOT_YOUR_TURN_TO_BID"
    INVALID_BID_AMOUNT = "INVALID_BID_AMOUNT"
    FIRST_BIDDER_MUST_BID = "FIRST_BIDDER_MUST_BID"
    NOT_IN_DABB_PHASE = "NOT_IN_DABB_PHASE"
    ONLY_BID_WINNER_CAN_TAKE_DABB = "ONLY_BID_WINNER_CAN_TAKE_DABB"
    DABB_ALREADY_TAKEN = "DABB_ALREADY_TAKEN"
    MUST_TAKE_DABB_FIRST = "MUST_TAKE_DABB_FIRST"
    ONLY_BID_WINNER_CAN_DISCARD = "ONLY_BID_WINNER_CAN_DISCARD"
    MUST_DISCARD_EXACT_COUNT = "MUST_DISCARD_EXACT_COUNT"
    CARD_NOT_IN_HAND = "CARD_NOT_IN_HAND"
    ONLY_BID_WINNER_CAN_GO_OUT = "ONLY_BID_WINNER_CAN_GO_OUT"
    MUST_TAKE_DABB_BEFORE_GOING_OUT = "MUST_TAKE_DABB_BEFORE_GOING_OUT"
    NOT_IN_TRUMP_PHASE = "NOT_IN_TRUMP_PHASE"
    ONLY_BID_WINNER_CAN_DECLARE_TRUMP = "ONLY_BID_WINNER_CAN_DECLARE_TRUMP"
    NOT_IN_MELDING_PHASE = "NOT_IN_MELDING_PHASE"
    CANNOT_MELD_WHEN_GOING_OUT = "CANNOT_MELD_WHEN_GOING_OUT"
    ALREADY_DECLARED_MELDS = "ALREADY_DECLARED_MELDS"
    INVALID_MELDS = "INVALID_MELDS"
    NOT_IN_TRICKS_PHASE = "NOT_IN_TRICKS_PHASE"
    INVALID_PLAY = "INVALID_PLAY"
    CANNOT_TERMINATE_IN_CURRENT_PHASE = "CANNOT_TERMINATE_IN_CURRENT_PHASE"
    INVALID_COMMAND = "INVALID_COMMAND"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

    def __str__(self) -> str:
        return self.value


MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.SESSION_NOT_FOUND: "Session {session_id} does not exist.",
    ErrorCode.SESSION_FULL: "All seats are taken.",
    ErrorCode.NOT_ENOUGH_PLAYERS: "Need {required} players, have {present}.",
    ErrorCode.GAME_ALREADY_STARTED: "The game has already started.",
    ErrorCode.NOT_YOUR_TURN: "It is not your turn.",
    ErrorCode.GAME_STATE_NOT_INITIALIZED: "The game has not been started.",
    ErrorCode.NOT_IN_BIDDING_PHASE: "Bidding is over.",
    ErrorCode.NOT_YOUR_TURN_TO_BID: "It is not your turn to bid.",
    ErrorCode.INVALID_BID_AMOUNT: "Bid {amount} is not allowed; minimum is {min_bid}.",
    ErrorCode.FIRST_BIDDER_MUST_BID: "The opening bidder must bid.",
    ErrorCode.NOT_IN_DABB_PHASE: "Not in the dabb phase.",
    ErrorCode.ONLY_BID_WINNER_CAN_TAKE_DABB: "Only the bid winner may take the dabb.",
    ErrorCode.DABB_ALREADY_TAKEN: "The dabb has already been taken.",
    ErrorCode.MUST_TAKE_DABB_FIRST: "Take the dabb before discarding.",
    ErrorCode.ONLY_BID_WINNER_CAN_DISCARD: "Only the bid winner may discard.",
    ErrorCode.MUST_DISCARD_EXACT_COUNT: "Exactly {count} cards must be discarded.",
    ErrorCode.CARD_NOT_IN_HAND: "Card {card_id} is not in your hand.",
    ErrorCode.ONLY_BID_WINNER_CAN_GO_OUT: "Only the bid winner may go out.",
    ErrorCode.MUST_TAKE_DABB_BEFORE_GOING_OUT: "Take the dabb before going out.",
    ErrorCode.NOT_IN_TRUMP_PHASE: "Not in the trump phase.",
    ErrorCode.ONLY_BID_WINNER_CAN_DECLARE_TRUMP: "Only the bid winner may declare trump.",
    ErrorCode.NOT_IN_MELDING_PHASE: "Not in the melding phase.",
    ErrorCode.CANNOT_MELD_WHEN_GOING_OUT: "A player who went out cannot meld.",
    ErrorCode.ALREADY_DECLARED_MELDS: "Melds were already declared.",
    ErrorCode.INVALID_MELDS: "The declared melds are not in your hand.",
    ErrorCode.NOT_IN_TRICKS_PHASE: "Not in the trick phase.",
    ErrorCode.INVALID_PLAY: "Card {card_id} may not be played now.",
    ErrorCode.CANNOT_TERMINATE_IN_CURRENT_PHASE: "The game cannot be ended in phase {phase}.",
    ErrorCode.INVALID_COMMAND: "Invalid command: {detail}",
    ErrorCode.UNKNOWN_ERROR: "Something went wrong.",
}


class GameError(RuntimeError):
    """Raised when a command is rejected; the game state is left untouched."""

    def __init__(self, code: ErrorCode, params: Optional[Mapping[str, Any]] = None) -> None:
        self.code = code
        self.params = dict(params or {})
        try:
            self.message = MESSAGES[code].format(**self.params)
        except KeyError:
            self.message = MESSAGES[code]
        super().__init__(f"[{code.value}] {self.message}")

    def to_dict(self) -> dict:
        return {"code": self.code.value, "message": self.message}
