import argparse
import logging

from klondike.AutoPlay import AutoPlayer, QueueScheduler
from klondike.Core import (
    Core,
    FoundationSource,
    FoundationTarget,
    GameConfig,
    TableauSource,
    TableauTarget,
    WasteSource,
)
from klondike.Interface import Interface
from view.adapter import CoreAdapter

SUIT_SYMBOLS = {"hearts": "♥", "diamonds": "♦", "clubs": "♣", "spades": "♠"}


def cardStr(card):
    if card is None:
        return "[  ]"
    if not card.face_up:
        return "--- "
    return SUIT_SYMBOLS[card.suit] + card.rank.ljust(3)


def _index(text: str) -> int:
    value = int(text)
    if value < 0:
        raise ValueError(f"negative index: {text}")
    return value


def parseSource(text: str, core: Core):
    """
    w -> waste, f2 -> foundation 2, t3 -> top card of column 3,
    t3.1 -> run starting at card 1 of column 3. Raises ValueError.
    """
    text = text.strip().lower()
    if text == "w":
        return WasteSource()
    if text.startswith("f"):
        return FoundationSource(_index(text[1:]))
    if text.startswith("t"):
        body = text[1:]
        if "." in body:
            col, card = body.split(".", 1)
            return TableauSource(_index(col), _index(card))
        col = _index(body)
        if col >= len(core.state.tableau):
            raise ValueError(f"no column {col}")
        return TableauSource(col, len(core.state.tableau[col]) - 1)
    raise ValueError(f"invalid source: {text}")


def parseTarget(text: str):
    text = text.strip().lower()
    if text.startswith("f"):
        return FoundationTarget(_index(text[1:]))
    if text.startswith("t"):
        return TableauTarget(_index(text[1:]))
    raise ValueError(f"invalid target: {text}")


class CommandLineInterface(Interface):

    def __init__(self):
        super().__init__()
        self.quiet = False

    def printAll(self):
        vm = CoreAdapter.snapshot(self.core.state)
        print(f"Stock: {vm.stock_count}    Waste: {cardStr(vm.waste.top)}    "
              f"Foundations: {' '.join(cardStr(p.top) for p in vm.foundations)}")
        print("----0-------1-------2-------3-------4-------5-------6---")
        i = 0
        while True:
            has = False
            line = str(i).rjust(2) + ": "
            for col in vm.tableau:
                if len(col.cards) <= i:
                    line += "        "
                    continue
                has = True
                line += cardStr(col.cards[i]) + "    "
            if not has:
                break
            print(line)
            i += 1
        print()

    def onStart(self):
        print("Game started!")

    def notifyRedraw(self):
        if not self.quiet:
            self.printAll()

    def onNoMoves(self):
        print("No moves left! (reshuffle / undo / new)")

    def onWin(self):
        print("You win!")


HELP = """mv SRC DST   move cards (SRC: w, f0-f3, t0-t6 or t<col>.<card>; DST: f0-f3, t0-t6)
dc SRC       send a card to the first foundation that accepts it
d            draw from stock, or recycle the waste when stock is empty
undo         undo the last action
reshuffle    reshuffle the board when no move is left
auto         let the computer play until it gets stuck
new          start a new game
quit         leave"""


def runAuto(core: Core, interface: CommandLineInterface, delay: int):
    scheduler = QueueScheduler(realtime=delay > 0)
    player = AutoPlayer(core, scheduler, delay=delay)
    interface.quiet = True
    try:
        if player.startAutoPlay():
            scheduler.runPending()
    finally:
        interface.quiet = False
        core.registerAutoPlayer(None)
    interface.printAll()
    print(f"Auto-play stopped: {player.stopReason}")


def parseArgs() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play Klondike solitaire in the terminal.")
    parser.add_argument("--config", type=str, default="config.ini", help="INI file with a [game] section.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the deal and reshuffles.")
    parser.add_argument("--verbose", action="store_true", help="Log auto-play and reshuffle details.")
    return parser.parse_args()


def main():
    args = parseArgs()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    config = GameConfig.loadFromFile(args.config)
    if args.seed is not None:
        config.seed = args.seed

    interface = CommandLineInterface()
    core = Core()
    core.registerInterface(interface)
    core.startGame(config)
    while True:
        try:
            command = input("> ").strip()
        except EOFError:
            break
        parts = command.split()
        if len(parts) == 0:
            continue
        name = parts[0]
        try:
            if name == "mv" and len(parts) == 3:
                if not core.askMove(parseSource(parts[1], core), parseTarget(parts[2])):
                    print("Cannot move!")
            elif name == "dc" and len(parts) == 2:
                if not core.askDoubleClick(parseSource(parts[1], core)):
                    print("Cannot move!")
            elif name == "d":
                if not core.askStock():
                    print("No card left!")
            elif name == "undo":
                if not core.askUndo():
                    print("Cannot undo!")
            elif name == "reshuffle":
                if not core.askReshuffle():
                    print("There are still moves to make!")
            elif name == "auto":
                runAuto(core, interface, config.autoPlayDelay)
            elif name == "new":
                core.newGame()
            elif name == "quit":
                break
            elif name == "help":
                print(HELP)
            else:
                print("Invalid command! (type help)")
        except ValueError:
            print("Invalid move!")


if __name__ == '__main__':
    main()
