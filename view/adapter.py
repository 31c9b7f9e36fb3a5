from klondike.Core import (
    CardMove,
    DrawCard,
    FoundationSource,
    FoundationTarget,
    GameEvent,
    GameState,
    RecycleWaste,
    Reshuffle,
    TableauSource,
    TableauTarget,
    UndoAction,
    WasteSource,
    hasAnyMove,
    isWon,
)
from view.view_model import AnimationEvent, CardView, GameViewModel, PileView


def _pile(cards) -> PileView:
    return PileView(cards=tuple(
        CardView(id=card.id, suit=card.suit, rank=card.rank, color=card.color, face_up=card.faceUp)
        for card in cards
    ))


def endpoint_to_dict(endpoint) -> dict:
    if endpoint is None:
        return {}
    if isinstance(endpoint, TableauSource):
        return {"type": "tableau", "column": endpoint.columnIndex, "card": endpoint.cardIndex}
    if isinstance(endpoint, TableauTarget):
        return {"type": "tableau", "column": endpoint.columnIndex}
    if isinstance(endpoint, WasteSource):
        return {"type": "waste"}
    if isinstance(endpoint, (FoundationSource, FoundationTarget)):
        return {"type": "foundation", "pile": endpoint.pileIndex}
    raise TypeError(f"unknown endpoint: {endpoint!r}")


class CoreAdapter:
    """Bridges GameState values and game events to a renderer-friendly model."""

    @staticmethod
    def snapshot(state: GameState) -> GameViewModel:
        won = isWon(state)
        return GameViewModel(
            stock_count=len(state.stock),
            waste=_pile(state.waste),
            foundations=tuple(_pile(pile) for pile in state.foundation),
            tableau=tuple(_pile(col) for col in state.tableau),
            history_depth=len(state.history),
            won=won,
            no_moves=not won and not hasAnyMove(state),
        )

    @staticmethod
    def event_to_animation(event: GameEvent) -> AnimationEvent:
        if isinstance(event, CardMove):
            return AnimationEvent(
                type="MOVE",
                payload={
                    "src": endpoint_to_dict(event.source),
                    "dest": endpoint_to_dict(event.target),
                    "count": event.count,
                },
            )
        if isinstance(event, DrawCard):
            return AnimationEvent(type="DRAW", payload={})
        if isinstance(event, RecycleWaste):
            return AnimationEvent(type="RECYCLE", payload={"count": event.count})
        if isinstance(event, Reshuffle):
            return AnimationEvent(type="RESHUFFLE", payload={"count": event.count})
        if isinstance(event, UndoAction):
            return AnimationEvent(type="UNDO", payload={})
        return AnimationEvent(type="UNKNOWN", payload={"event": type(event).__name__})
