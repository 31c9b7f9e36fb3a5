import logging
import time
from dataclasses import dataclass
from typing import Optional

from klondike.Core import (
    CardMove,
    DrawCard,
    FoundationTarget,
    GameState,
    RecycleWaste,
    TableauSource,
    TableauTarget,
    WasteSource,
    canMoveToTableau,
    drawCard,
    executeMove,
    firstFoundationFor,
    isWon,
    lastOf,
    recycleWaste,
)

logger = logging.getLogger(__name__)

TABLEAU_TO_FOUNDATION = "TABLEAU_TO_FOUNDATION"
WASTE_TO_FOUNDATION = "WASTE_TO_FOUNDATION"
WASTE_TO_TABLEAU = "WASTE_TO_TABLEAU"
TABLEAU_TO_TABLEAU = "TABLEAU_TO_TABLEAU"
DRAW = "DRAW"
RECYCLE = "RECYCLE"
STOP = "STOP"

NON_PROGRESS = (DRAW, RECYCLE)


@dataclass(frozen=True)
class AutoMove:
    """One step chosen by the heuristic, with the state it leads to."""

    kind: str
    state: GameState
    source: object = None
    target: object = None
    count: int = 0

    @property
    def isProgress(self) -> bool:
        return self.kind not in NON_PROGRESS and self.kind != STOP

    def toEvent(self):
        if self.kind == DRAW:
            return DrawCard()
        if self.kind == RECYCLE:
            return RecycleWaste(self.count)
        return CardMove(self.source, self.target, self.count)


def _move(kind, state, source, target, cards):
    return AutoMove(kind=kind, state=executeMove(state, source, target, cards),
                    source=source, target=target, count=len(cards))


def _tableauToTableau(state: GameState) -> Optional[AutoMove]:
    tableau = state.tableau
    for c, col in enumerate(tableau):
        for i, card in enumerate(col):
            if not card.faceUp:
                continue
            revealing = i > 0 and not col[i - 1].faceUp
            kingOut = card.rank == "K" and i > 0
            if not (revealing or kingOut):
                continue
            for t, dest in enumerate(tableau):
                if t == c:
                    continue
                if canMoveToTableau(card, lastOf(dest)):
                    return _move(TABLEAU_TO_TABLEAU, state, TableauSource(c, i), TableauTarget(t), col[i:])
    return None


def makeAutoMove(state: GameState) -> AutoMove:
    """
    Pick the first applicable action in priority order:
    tableau top to foundation, waste to foundation, waste to tableau,
    revealing or King-lifting tableau move, draw, recycle. STOP when none applies.
    """
    for c, col in enumerate(state.tableau):
        if len(col) == 0:
            continue
        pile = firstFoundationFor(state, col[-1])
        if pile >= 0:
            return _move(TABLEAU_TO_FOUNDATION, state, TableauSource(c, len(col) - 1), FoundationTarget(pile), [col[-1]])

    wasteTop = lastOf(state.waste)
    if wasteTop is not None:
        pile = firstFoundationFor(state, wasteTop)
        if pile >= 0:
            return _move(WASTE_TO_FOUNDATION, state, WasteSource(), FoundationTarget(pile), [wasteTop])
        for t, dest in enumerate(state.tableau):
            if canMoveToTableau(wasteTop, lastOf(dest)):
                return _move(WASTE_TO_TABLEAU, state, WasteSource(), TableauTarget(t), [wasteTop])

    move = _tableauToTableau(state)
    if move is not None:
        return move

    if len(state.stock) > 0:
        return AutoMove(kind=DRAW, state=drawCard(state), count=1)
    if len(state.waste) > 0:
        return AutoMove(kind=RECYCLE, state=recycleWaste(state), count=len(state.waste))
    return AutoMove(kind=STOP, state=state)


class TkScheduler:
    def __init__(self, widget):
        self.widget = widget

    def schedule(self, delay, callback):
        return self.widget.after(delay, callback)

    def cancel(self, handle):
        self.widget.after_cancel(handle)


class QueueScheduler:
    """
    Keeps scheduled callbacks in a queue that runPending() drains in order.
    With realtime set, each callback waits for its delay first.
    """

    def __init__(self, realtime=False, sleep=time.sleep):
        self.realtime = realtime
        self.sleep = sleep
        self.pending = []
        self.nextHandle = 0

    def schedule(self, delay, callback):
        self.nextHandle += 1
        self.pending.append((self.nextHandle, delay, callback))
        return self.nextHandle

    def cancel(self, handle):
        self.pending = [p for p in self.pending if p[0] != handle]

    def runPending(self, maxSteps=None) -> int:
        executed = 0
        while len(self.pending) > 0:
            if maxSteps is not None and executed >= maxSteps:
                break
            _, delay, callback = self.pending.pop(0)
            if self.realtime and delay > 0:
                self.sleep(delay / 1000.0)
            callback()
            executed += 1
        return executed


class AutoPlayer:
    """
    Drives makeAutoMove through a Core on a timer. Each tick re-arms itself
    while auto-play is enabled, the game is not won and the stall counter is
    below the limit.
    """

    def __init__(self, core, scheduler, delay=None, stallLimit=None):
        self.core = core
        self.scheduler = scheduler
        self.delay = core.config.autoPlayDelay if delay is None else delay
        self.stallLimit = core.config.stallLimit if stallLimit is None else stallLimit
        self.enabled = False
        self.stallCount = 0
        self.generation = 0
        self.handle = None
        self.stopReason = None
        core.registerAutoPlayer(self)

    def startAutoPlay(self) -> bool:
        if self.enabled or self.core.state is None or isWon(self.core.state):
            return False
        self.enabled = True
        self.stallCount = 0
        self.stopReason = None
        self.generation += 1
        logger.debug("auto-play started")
        self._arm()
        return True

    def stopAutoPlay(self, reason="stopped") -> bool:
        if not self.enabled:
            return False
        self.enabled = False
        self.generation += 1
        self.stopReason = reason
        if self.handle is not None:
            self.scheduler.cancel(self.handle)
            self.handle = None
        logger.debug("auto-play stopped: %s", reason)
        return True

    def toggle(self):
        if self.enabled:
            self.stopAutoPlay()
        else:
            self.startAutoPlay()

    def reset(self):
        self.stopAutoPlay("reset")
        self.stallCount = 0

    def _arm(self):
        if self.handle is not None:
            self.scheduler.cancel(self.handle)
        generation = self.generation
        self.handle = self.scheduler.schedule(self.delay, lambda: self._fire(generation))

    def _fire(self, generation):
        # a tick armed before the last start/stop is stale
        if generation != self.generation:
            return
        self.handle = None
        self.tick()

    def tick(self):
        if not self.enabled:
            return
        if isWon(self.core.state):
            self.stopAutoPlay("won")
            return
        generation = self.generation
        move = makeAutoMove(self.core.state)
        if move.kind == STOP:
            self.stopAutoPlay("no_moves")
            return
        self.core.applyState(move.state, move.toEvent())
        if move.isProgress:
            self.stallCount = 0
        else:
            self.stallCount += 1
        if self.stallCount >= self.stallLimit:
            self.stopAutoPlay("stalled")
            return
        if self.enabled and generation == self.generation:
            self._arm()
