from klondike.Core import Core, GameEvent


class Interface:

    def __init__(self):
        self.core: Core = None

    def onStart(self):
        pass

    def onEvent(self, event: GameEvent):
        """Called after a move, draw, recycle or reshuffle has been applied to core.state."""
        self.notifyRedraw()

    def onUndoEvent(self, event: GameEvent):
        self.notifyRedraw()

    def onNoMoves(self):
        """
        Called when the game is not won and no productive move is left. The
        player may reshuffle, undo or start a new game.
        """
        pass

    def notifyRedraw(self):
        pass

    def onWin(self):
        pass
