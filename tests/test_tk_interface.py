import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

try:
    import tkinter
except ImportError:
    tkinter = None

from klondike.AutoPlay import AutoPlayer, QueueScheduler
from klondike.Core import Card, Core, GameConfig, GameState, WasteSource


def up(suit, rank):
    return Card(suit, rank, True)


def make_state(tableau, waste):
    tableau = tableau + [[] for _ in range(7 - len(tableau))]
    return GameState(tableau=tableau, foundation=[[], [], [], []], stock=[], waste=waste)


def center(rect):
    (x, y) = rect.upperLeft
    return SimpleNamespace(x=x + rect.width / 2, y=y + rect.height / 2)


@unittest.skipIf(tkinter is None, "tkinter is not available")
class DragDuringAutoPlayTestCase(unittest.TestCase):
    def setUp(self):
        from klondike.TkInterface import TkInterface

        self.tmp = tempfile.TemporaryDirectory()
        self.ui = TkInterface(configPath=str(Path(self.tmp.name) / "config.ini"))
        self.ui.canvas = MagicMock()
        self.core = Core()
        self.core.registerInterface(self.ui)
        config = GameConfig()
        config.seed = 1
        self.core.startGame(config)
        self.scheduler = QueueScheduler()
        self.player = AutoPlayer(self.core, self.scheduler)

    def tearDown(self):
        self.tmp.cleanup()

    def grab_waste_and_tick(self):
        self.ui.mousePressed(center(self.ui.wasteRect))
        self.assertEqual(WasteSource(), self.ui.dragSource)
        self.player.startAutoPlay()
        self.assertEqual(1, self.scheduler.runPending(maxSteps=1))
        self.assertEqual(["hearts-A"], [c.id for c in self.core.state.foundation[0]])

    def test_drag_is_dropped_when_its_card_leaves(self):
        self.core.loadState(make_state([[up("clubs", "9")]], [up("hearts", "A")]))
        self.grab_waste_and_tick()
        self.assertIsNone(self.ui.dragSource)
        self.ui.redrawAll()

    def test_release_does_not_move_the_new_top_card(self):
        self.core.loadState(make_state([[up("hearts", "3")]], [up("clubs", "2"), up("hearts", "A")]))
        self.grab_waste_and_tick()
        self.player.stopAutoPlay()
        self.ui.mouseReleased(center(self.ui.columnRects[0]))
        self.assertEqual(["clubs-2"], [c.id for c in self.core.state.waste])
        self.assertEqual(["hearts-3"], [c.id for c in self.core.state.tableau[0]])

    def test_redraw_with_empty_dragged_pile(self):
        self.core.loadState(make_state([[up("clubs", "9")]], []))
        self.ui.dragSource = WasteSource()
        self.ui.redrawAll()


if __name__ == "__main__":
    unittest.main()
