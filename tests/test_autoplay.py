import unittest
from collections import Counter
from unittest.mock import patch

from klondike import AutoPlay
from klondike.AutoPlay import (
    DRAW,
    RECYCLE,
    STOP,
    TABLEAU_TO_FOUNDATION,
    TABLEAU_TO_TABLEAU,
    WASTE_TO_FOUNDATION,
    WASTE_TO_TABLEAU,
    AutoPlayer,
    QueueScheduler,
    makeAutoMove,
)
from klondike.Core import (
    RANKS,
    SUITS,
    Card,
    Core,
    FoundationTarget,
    GameConfig,
    GameState,
    TableauSource,
    TableauTarget,
    canMoveToTableau,
    undo,
)
from klondike.Interface import Interface


def up(suit, rank):
    return Card(suit, rank, True)


def down(suit, rank):
    return Card(suit, rank, False)


def make_state(tableau=None, foundation=None, stock=None, waste=None):
    tableau = tableau or []
    tableau = tableau + [[] for _ in range(7 - len(tableau))]
    foundation = foundation or []
    foundation = foundation + [[] for _ in range(4 - len(foundation))]
    return GameState(tableau=tableau, foundation=foundation, stock=stock or [], waste=waste or [])


class RecordingScheduler:
    def __init__(self):
        self.calls = []
        self.cancelled = []

    def schedule(self, delay, callback):
        self.calls.append((delay, callback))
        return len(self.calls)

    def cancel(self, handle):
        self.cancelled.append(handle)


class InvariantInterface(Interface):
    """Checks the board after every applied action."""

    def __init__(self, test: unittest.TestCase):
        super().__init__()
        self.test = test
        self.previous = None
        self.events = 0

    def onStart(self):
        self.previous = self.core.state

    def onEvent(self, event):
        state = self.core.state
        self.events += 1
        self.test.assertEqual(52, len(state.allCards()))
        self.test.assertEqual(Counter(c.id for c in state.allCards()), Counter(c.id for c in self.previous.allCards()))
        self.test.assertEqual(self.previous, undo(state))
        for i, pile in enumerate(state.foundation):
            if pile:
                self.test.assertTrue(all(c.suit == pile[0].suit for c in pile))
                self.test.assertEqual(list(RANKS[:len(pile)]), [c.rank for c in pile])
        for col in state.tableau:
            faces = [c.faceUp for c in col]
            if col:
                self.test.assertTrue(faces[-1])
            first_up = faces.index(True) if True in faces else len(faces)
            self.test.assertTrue(all(faces[first_up:]))
            for lower, upper in zip(col[first_up:], col[first_up + 1:]):
                self.test.assertTrue(canMoveToTableau(upper, lower))
        self.test.assertTrue(all(c.faceUp for c in state.waste))
        self.test.assertTrue(all(not c.faceUp for c in state.stock))
        self.previous = state


class MakeAutoMoveTestCase(unittest.TestCase):
    def test_tableau_top_goes_home_first(self):
        state = make_state(tableau=[[up("clubs", "9")], [down("clubs", "4"), up("hearts", "A")]],
                           waste=[up("spades", "A")])
        move = makeAutoMove(state)
        self.assertEqual(TABLEAU_TO_FOUNDATION, move.kind)
        self.assertEqual(TableauSource(1, 1), move.source)
        self.assertEqual(FoundationTarget(0), move.target)
        self.assertEqual(["hearts-A"], [c.id for c in move.state.foundation[0]])
        self.assertTrue(move.state.tableau[1][0].faceUp)
        self.assertTrue(move.isProgress)

    def test_waste_to_foundation(self):
        state = make_state(tableau=[[up("clubs", "9")]], foundation=[[up("spades", "A")]], waste=[up("spades", "2")])
        move = makeAutoMove(state)
        self.assertEqual(WASTE_TO_FOUNDATION, move.kind)
        self.assertEqual(["spades-A", "spades-2"], [c.id for c in move.state.foundation[0]])

    def test_waste_to_lowest_tableau_column(self):
        state = make_state(tableau=[[up("diamonds", "10")], [up("hearts", "9")], [up("diamonds", "9")]],
                           waste=[up("spades", "8")])
        move = makeAutoMove(state)
        self.assertEqual(WASTE_TO_TABLEAU, move.kind)
        self.assertEqual(TableauTarget(1), move.target)

    def test_revealing_tableau_move(self):
        state = make_state(tableau=[[down("clubs", "3"), up("spades", "8")], [up("hearts", "9")]],
                           stock=[down("diamonds", "J")])
        move = makeAutoMove(state)
        self.assertEqual(TABLEAU_TO_TABLEAU, move.kind)
        self.assertEqual(TableauSource(0, 1), move.source)
        self.assertEqual(TableauTarget(1), move.target)

    def test_inert_tableau_move_is_skipped(self):
        state = make_state(tableau=[[up("spades", "8")], [up("hearts", "9")]], stock=[down("diamonds", "J")])
        move = makeAutoMove(state)
        self.assertEqual(DRAW, move.kind)
        self.assertFalse(move.isProgress)
        self.assertEqual(["diamonds-J"], [c.id for c in move.state.waste])

    def test_king_leaves_its_column(self):
        state = make_state(tableau=[[up("diamonds", "5"), up("spades", "K")], [up("hearts", "3")], []])
        move = makeAutoMove(state)
        self.assertEqual(TABLEAU_TO_TABLEAU, move.kind)
        self.assertEqual(TableauTarget(2), move.target)

    def test_recycle_then_stop(self):
        state = make_state(tableau=[[up("hearts", "5")]], waste=[up("clubs", "9")])
        move = makeAutoMove(state)
        self.assertEqual(RECYCLE, move.kind)
        self.assertEqual(["clubs-9"], [c.id for c in move.state.stock])

        stuck = make_state(tableau=[[up("hearts", "5")]])
        move = makeAutoMove(stuck)
        self.assertEqual(STOP, move.kind)
        self.assertIs(stuck, move.state)


class AutoPlayerTestCase(unittest.TestCase):
    def make_core(self, state=None, seed=1):
        config = GameConfig()
        config.seed = seed
        core = Core()
        core.registerInterface(Interface())
        core.startGame(config)
        if state is not None:
            core.loadState(state)
        return core

    def test_start_schedules_with_configured_delay(self):
        core = self.make_core()
        scheduler = RecordingScheduler()
        player = AutoPlayer(core, scheduler)
        self.assertTrue(player.startAutoPlay())
        self.assertEqual(150, scheduler.calls[0][0])
        self.assertFalse(player.startAutoPlay())

    def test_won_game_never_asks_for_a_move(self):
        piles = [[up(suit, rank) for rank in RANKS] for suit in SUITS]
        core = self.make_core(make_state(foundation=piles))
        scheduler = QueueScheduler()
        player = AutoPlayer(core, scheduler)
        with patch.object(AutoPlay, "makeAutoMove") as mocked:
            self.assertFalse(player.startAutoPlay())
            player.enabled = True
            player.tick()
            mocked.assert_not_called()
        self.assertFalse(player.enabled)
        self.assertEqual("won", player.stopReason)

    def test_stops_when_nothing_is_left(self):
        state = make_state(tableau=[[up("hearts", "5")], [up("spades", "8")]])
        core = self.make_core(state)
        scheduler = QueueScheduler()
        player = AutoPlayer(core, scheduler)
        player.startAutoPlay()
        self.assertEqual(1, scheduler.runPending())
        self.assertFalse(player.enabled)
        self.assertEqual("no_moves", player.stopReason)
        self.assertIs(state, core.state)

    def test_stall_limit_stops_draw_cycling(self):
        state = make_state(tableau=[[up("hearts", "5")]], stock=[down("spades", "2"), down("clubs", "3")])
        core = self.make_core(state)
        scheduler = QueueScheduler()
        player = AutoPlayer(core, scheduler, stallLimit=100)
        player.startAutoPlay()
        self.assertEqual(100, scheduler.runPending())
        self.assertFalse(player.enabled)
        self.assertEqual("stalled", player.stopReason)
        self.assertEqual(100, len(core.state.history))

    def test_progress_resets_stall_counter(self):
        state = make_state(tableau=[[up("hearts", "5")]], stock=[down("spades", "A"), down("clubs", "3")])
        core = self.make_core(state)
        scheduler = QueueScheduler()
        player = AutoPlayer(core, scheduler, stallLimit=5)
        player.startAutoPlay()
        scheduler.runPending(maxSteps=3)
        # draw 3C, draw AS, AS home
        self.assertEqual(0, player.stallCount)
        self.assertEqual(["spades-A"], [c.id for c in core.state.foundation[0]])

    def test_stop_cancels_pending_tick(self):
        core = self.make_core()
        scheduler = QueueScheduler()
        player = AutoPlayer(core, scheduler)
        player.startAutoPlay()
        self.assertEqual(1, len(scheduler.pending))
        player.stopAutoPlay()
        self.assertEqual(0, len(scheduler.pending))
        self.assertEqual(0, scheduler.runPending())

    def test_stale_tick_does_nothing(self):
        core = self.make_core()
        scheduler = RecordingScheduler()
        player = AutoPlayer(core, scheduler)
        player.startAutoPlay()
        stale = scheduler.calls[0][1]
        player.stopAutoPlay()
        player.startAutoPlay()
        before = core.state
        stale()
        self.assertIs(before, core.state)
        self.assertEqual(2, len(scheduler.calls))

    def test_new_game_stops_auto_play(self):
        core = self.make_core()
        player = AutoPlayer(core, QueueScheduler())
        player.startAutoPlay()
        core.newGame()
        self.assertFalse(player.enabled)
        self.assertEqual(0, player.stallCount)

    def test_won_game_stops_auto_play(self):
        piles = [[up(suit, rank) for rank in RANKS] for suit in SUITS]
        king = piles[3].pop()
        core = self.make_core(make_state(foundation=piles, waste=[king]))
        scheduler = QueueScheduler()
        player = AutoPlayer(core, scheduler)
        player.startAutoPlay()
        self.assertEqual(1, scheduler.runPending())
        self.assertTrue(core.isWon())
        self.assertEqual("won", player.stopReason)


class AutoPlayPropertyTestCase(unittest.TestCase):
    def test_seeded_games_keep_board_invariants(self):
        for seed in range(8):
            config = GameConfig()
            config.seed = seed
            core = Core()
            ui = InvariantInterface(self)
            core.registerInterface(ui)
            core.startGame(config)
            scheduler = QueueScheduler()
            player = AutoPlayer(core, scheduler)
            player.startAutoPlay()
            scheduler.runPending(maxSteps=2000)
            if core.isGameOverNoMoves():
                self.assertTrue(core.askReshuffle())
            self.assertGreater(ui.events, 0)


if __name__ == "__main__":
    unittest.main()
