from dataclasses import dataclass


@dataclass(frozen=True)
class CardView:
    id: str
    suit: str
    rank: str
    color: str
    face_up: bool


@dataclass(frozen=True)
class PileView:
    cards: tuple[CardView, ...]

    @property
    def top(self):
        return self.cards[-1] if self.cards else None


@dataclass(frozen=True)
class GameViewModel:
    stock_count: int
    waste: PileView
    foundations: tuple[PileView, ...]
    tableau: tuple[PileView, ...]
    history_depth: int
    won: bool
    no_moves: bool


@dataclass(frozen=True)
class AnimationEvent:
    type: str
    payload: dict
