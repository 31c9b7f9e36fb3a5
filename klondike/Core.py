import configparser
import logging
import random
from dataclasses import dataclass

logger = logging.getLogger(__name__)

SUITS = ("hearts", "diamonds", "clubs", "spades")
RANKS = ("A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K")
RANK_VALUES = {rank: i + 1 for i, rank in enumerate(RANKS)}

COLUMN_COUNT = 7
PILE_COUNT = 4


def lastOf(lst):
    if len(lst) == 0:
        return None
    return lst[len(lst) - 1]


class Card:
    SUIT_SYMBOLS = {"hearts": "♥", "diamonds": "♦", "clubs": "♣", "spades": "♠"}

    def __init__(self, suit, rank, faceUp=False):
        self.id = f"{suit}-{rank}"
        self.suit = suit
        self.rank = rank
        self.color = "red" if suit in ("hearts", "diamonds") else "black"
        self.faceUp = faceUp

    def value(self):
        return RANK_VALUES[self.rank]

    def copy(self):
        return Card(self.suit, self.rank, self.faceUp)

    def turned(self, faceUp):
        c = self.copy()
        c.faceUp = faceUp
        return c

    def __eq__(self, other):
        if not isinstance(other, Card):
            return NotImplemented
        return self.id == other.id and self.faceUp == other.faceUp

    __hash__ = None

    def __str__(self):
        if self.faceUp:
            return self.id
        return self.id + "H"

    def __repr__(self):
        return self.__str__()

    def gameStr(self):
        if not self.faceUp:
            return "---"
        return Card.SUIT_SYMBOLS[self.suit] + self.rank.ljust(2)


def createDeck():
    """The 52 cards in suit-major, rank-ascending order, all face-down."""
    return [Card(suit, rank) for suit in SUITS for rank in RANKS]


def shuffleDeck(cards, rng=None):
    newDeck = list(cards)
    (rng or random).shuffle(newDeck)
    return newDeck


def canMoveToTableau(moving: Card, targetTop) -> bool:
    if targetTop is None:
        return moving.rank == "K"
    return targetTop.color != moving.color and targetTop.value() - 1 == moving.value()


def canMoveToFoundation(moving: Card, targetTop) -> bool:
    if targetTop is None:
        return moving.rank == "A"
    return targetTop.suit == moving.suit and targetTop.value() + 1 == moving.value()


# Move endpoints. A source names where cards come from, a target where they land.

@dataclass(frozen=True)
class TableauSource:
    columnIndex: int
    cardIndex: int


@dataclass(frozen=True)
class WasteSource:
    pass


@dataclass(frozen=True)
class FoundationSource:
    pileIndex: int


@dataclass(frozen=True)
class TableauTarget:
    columnIndex: int


@dataclass(frozen=True)
class FoundationTarget:
    pileIndex: int


def asTarget(endpoint):
    """Interpret a clicked endpoint as a drop target; None when it cannot receive cards."""
    if isinstance(endpoint, (TableauTarget, FoundationTarget)):
        return endpoint
    if isinstance(endpoint, TableauSource):
        return TableauTarget(endpoint.columnIndex)
    if isinstance(endpoint, FoundationSource):
        return FoundationTarget(endpoint.pileIndex)
    if isinstance(endpoint, WasteSource):
        return None
    raise TypeError(f"unknown endpoint: {endpoint!r}")


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time copy of every zone. Cards here are never shared with a live state."""

    tableau: tuple
    foundation: tuple
    stock: tuple
    waste: tuple


def _copyCards(cards):
    return [c.copy() for c in cards]


class GameState:

    def __init__(self, tableau, foundation, stock, waste, history=None):
        self.tableau = tableau
        self.foundation = foundation
        self.stock = stock
        self.waste = waste
        self.history = history if history is not None else []

    def snapshot(self) -> Snapshot:
        return Snapshot(
            tableau=tuple(tuple(_copyCards(col)) for col in self.tableau),
            foundation=tuple(tuple(_copyCards(pile)) for pile in self.foundation),
            stock=tuple(_copyCards(self.stock)),
            waste=tuple(_copyCards(self.waste)),
        )

    @staticmethod
    def fromSnapshot(snapshot: Snapshot, history):
        return GameState(
            tableau=[_copyCards(col) for col in snapshot.tableau],
            foundation=[_copyCards(pile) for pile in snapshot.foundation],
            stock=_copyCards(snapshot.stock),
            waste=_copyCards(snapshot.waste),
            history=list(history),
        )

    def derive(self):
        """
        A new state sharing this state's cards in fresh zone lists, with this
        state checkpointed onto the history.
        """
        return GameState(
            tableau=[list(col) for col in self.tableau],
            foundation=[list(pile) for pile in self.foundation],
            stock=list(self.stock),
            waste=list(self.waste),
            history=self.history + [self.snapshot()],
        )

    def allCards(self):
        cards = []
        for col in self.tableau:
            cards.extend(col)
        for pile in self.foundation:
            cards.extend(pile)
        cards.extend(self.stock)
        cards.extend(self.waste)
        return cards

    def __eq__(self, other):
        if not isinstance(other, GameState):
            return NotImplemented
        return (self.tableau == other.tableau
                and self.foundation == other.foundation
                and self.stock == other.stock
                and self.waste == other.waste
                and self.history == other.history)

    __hash__ = None


def _dealTableau(deck):
    tableau = [[] for _ in range(COLUMN_COUNT)]
    for i in range(COLUMN_COUNT):
        for j in range(i, COLUMN_COUNT):
            if len(deck) == 0:
                break
            card = deck.pop().turned(i == j)
            tableau[j].append(card)
    # a short deck can leave a column without its face-up pass
    for col in tableau:
        if len(col) > 0 and not col[-1].faceUp:
            col[-1] = col[-1].turned(True)
    return tableau


def dealFromDeck(deck):
    """Deal an already ordered deck; the draw end is the tail of the list."""
    deck = list(deck)
    tableau = _dealTableau(deck)
    return GameState(
        tableau=tableau,
        foundation=[[] for _ in range(PILE_COUNT)],
        stock=deck,
        waste=[],
        history=[],
    )


def dealGame(rng=None):
    return dealFromDeck(shuffleDeck(createDeck(), rng))


def cardsFrom(state: GameState, source):
    """The cards a source would move; empty when there is nothing to take."""
    if isinstance(source, TableauSource):
        return state.tableau[source.columnIndex][source.cardIndex:]
    if isinstance(source, WasteSource):
        return state.waste[-1:]
    if isinstance(source, FoundationSource):
        return state.foundation[source.pileIndex][-1:]
    raise TypeError(f"unknown move source: {source!r}")


def executeMove(state: GameState, source, target, cardsToMove) -> GameState:
    """
    Relocate cardsToMove from source to target. Legality is not checked here,
    callers go through the rule predicates first.
    """
    nextState = state.derive()

    if isinstance(source, TableauSource):
        col = nextState.tableau[source.columnIndex]
        del col[source.cardIndex:]
        if len(col) > 0 and not col[-1].faceUp:
            col[-1] = col[-1].turned(True)
    elif isinstance(source, WasteSource):
        nextState.waste.pop()
    elif isinstance(source, FoundationSource):
        nextState.foundation[source.pileIndex].pop()
    else:
        raise TypeError(f"unknown move source: {source!r}")

    if isinstance(target, TableauTarget):
        nextState.tableau[target.columnIndex].extend(cardsToMove)
    elif isinstance(target, FoundationTarget):
        nextState.foundation[target.pileIndex].extend(cardsToMove)
    else:
        raise TypeError(f"unknown move target: {target!r}")
    return nextState


def attemptMove(state: GameState, source, target) -> GameState:
    cardsToMove = cardsFrom(state, source)
    if len(cardsToMove) == 0:
        return state
    movingCard = cardsToMove[0]
    if not movingCard.faceUp:
        return state

    if isinstance(target, TableauTarget):
        if not canMoveToTableau(movingCard, lastOf(state.tableau[target.columnIndex])):
            return state
    elif isinstance(target, FoundationTarget):
        if len(cardsToMove) > 1:
            return state
        if not canMoveToFoundation(movingCard, lastOf(state.foundation[target.pileIndex])):
            return state
    else:
        raise TypeError(f"unknown move target: {target!r}")
    return executeMove(state, source, target, cardsToMove)


def firstFoundationFor(state: GameState, card: Card) -> int:
    for i, pile in enumerate(state.foundation):
        if canMoveToFoundation(card, lastOf(pile)):
            return i
    return -1


def handleDoubleClick(state: GameState, source) -> GameState:
    card = None
    if isinstance(source, TableauSource):
        col = state.tableau[source.columnIndex]
        if source.cardIndex == len(col) - 1:
            card = col[source.cardIndex]
    elif isinstance(source, WasteSource):
        card = lastOf(state.waste)
    elif isinstance(source, FoundationSource):
        card = None
    else:
        raise TypeError(f"unknown move source: {source!r}")

    if card is None or not card.faceUp:
        return state
    pile = firstFoundationFor(state, card)
    if pile < 0:
        return state
    return executeMove(state, source, FoundationTarget(pile), [card])


def drawCard(state: GameState) -> GameState:
    if len(state.stock) == 0:
        return state
    nextState = state.derive()
    card = nextState.stock.pop()
    nextState.waste.append(card.turned(True))
    return nextState


def recycleWaste(state: GameState) -> GameState:
    if len(state.stock) > 0 or len(state.waste) == 0:
        return state
    nextState = state.derive()
    nextState.stock = [c.turned(False) for c in reversed(state.waste)]
    nextState.waste = []
    return nextState


def undo(state: GameState) -> GameState:
    if len(state.history) == 0:
        return state
    return GameState.fromSnapshot(state.history[-1], state.history[:-1])


def isWon(state: GameState) -> bool:
    return all(len(pile) == len(RANKS) for pile in state.foundation)


def _isProductive(column, index, foundationTops) -> bool:
    if index == 0:
        return False
    below = column[index - 1]
    if not below.faceUp:
        return True
    if column[index].rank == "K":
        return True
    return any(canMoveToFoundation(below, top) for top in foundationTops)


def hasAnyMove(state: GameState) -> bool:
    """
    Whether some useful move exists. Tableau-to-tableau moves only count when
    they uncover a face-down card, lift a King out from above other cards, or
    leave behind a card that can go straight to a foundation.
    """
    foundationTops = [lastOf(pile) for pile in state.foundation]
    columnTops = [lastOf(col) for col in state.tableau]

    def toFoundation(card):
        return any(canMoveToFoundation(card, top) for top in foundationTops)

    def toTableau(card, exclude=-1):
        for i, top in enumerate(columnTops):
            if i != exclude and canMoveToTableau(card, top):
                return True
        return False

    for card in state.stock + state.waste:
        if toFoundation(card) or toTableau(card):
            return True

    for top in columnTops:
        if top is not None and toFoundation(top):
            return True

    for c, col in enumerate(state.tableau):
        for i, card in enumerate(col):
            if not card.faceUp:
                continue
            if toTableau(card, exclude=c) and _isProductive(col, i, foundationTops):
                return True
    return False


def reshuffleBoard(state: GameState, rng=None) -> GameState:
    """
    Gather tableau, stock and waste, shuffle and redeal them. Foundations are
    kept as they are. Callers only do this once no move is left.
    """
    cards = []
    for col in state.tableau:
        cards.extend(col)
    cards.extend(state.stock)
    cards.extend(state.waste)
    deck = shuffleDeck([c.turned(False) for c in cards], rng)
    tableau = _dealTableau(deck)
    return GameState(
        tableau=tableau,
        foundation=[list(pile) for pile in state.foundation],
        stock=deck,
        waste=[],
        history=state.history + [state.snapshot()],
    )


class GameConfig:
    SECTION = "game"

    def __init__(self):
        self.seed = None
        self.autoPlayDelay = 150
        self.stallLimit = 100
        self.autoReshuffle = False

    def makeRandom(self):
        if self.seed is None:
            return random.Random()
        return random.Random(self.seed)

    @staticmethod
    def _sanitize(raw):
        config = GameConfig()
        seed = str(raw.get("seed", "")).strip()
        if seed not in ("", "None"):
            try:
                config.seed = int(seed)
            except ValueError:
                config.seed = None
        try:
            delay = int(raw.get("autoPlayDelay", config.autoPlayDelay))
            if delay >= 0:
                config.autoPlayDelay = delay
        except (TypeError, ValueError):
            pass
        try:
            stallLimit = int(raw.get("stallLimit", config.stallLimit))
            if stallLimit > 0:
                config.stallLimit = stallLimit
        except (TypeError, ValueError):
            pass
        flag = str(raw.get("autoReshuffle", "")).strip().lower()
        config.autoReshuffle = flag in ("1", "true", "yes", "on")
        return config

    @staticmethod
    def loadFromFile(path):
        parser = configparser.ConfigParser()
        parser.optionxform = str
        try:
            read = parser.read(path, encoding="utf-8")
        except configparser.Error:
            return GameConfig()
        if not read or GameConfig.SECTION not in parser:
            return GameConfig()
        return GameConfig._sanitize(dict(parser[GameConfig.SECTION]))

    def saveToFile(self, path):
        parser = configparser.ConfigParser()
        parser.optionxform = str
        parser[GameConfig.SECTION] = {
            "seed": "" if self.seed is None else str(self.seed),
            "autoPlayDelay": str(self.autoPlayDelay),
            "stallLimit": str(self.stallLimit),
            "autoReshuffle": "1" if self.autoReshuffle else "0",
        }
        with open(path, "w", encoding="utf-8") as f:
            parser.write(f)


class GameEvent:
    pass


class CardMove(GameEvent):
    def __init__(self, source, target, count):
        self.source = source
        self.target = target
        self.count = count


class DrawCard(GameEvent):
    pass


class RecycleWaste(GameEvent):
    def __init__(self, count):
        self.count = count


class Reshuffle(GameEvent):
    def __init__(self, count):
        self.count = count


class UndoAction(GameEvent):
    pass


class Core:
    """
    ask*** : should be called by the player or a front end, returns whether the state changed
    module functions : the actual rules, each returns a new GameState
    """
    DEFAULT_CONFIG = GameConfig()

    def __init__(self):
        self.interface = None
        self.config = Core.DEFAULT_CONFIG
        self.random = None
        self.state: GameState = None
        self.selected = None
        self.gameEnded = False
        self.autoPlayer = None

    def registerInterface(self, interface):
        self.interface = interface
        interface.core = self

    def registerAutoPlayer(self, autoPlayer):
        self.autoPlayer = autoPlayer

    def startGame(self, gameConfig: GameConfig = DEFAULT_CONFIG):
        if self.interface is None:
            raise Exception("interface is null")
        self.config = gameConfig
        self.random = gameConfig.makeRandom()
        self.newGame()

    def newGame(self):
        if self.autoPlayer is not None:
            self.autoPlayer.reset()
        self.state = dealGame(self.random)
        self.selected = None
        self.gameEnded = False
        self.interface.onStart()
        self.interface.notifyRedraw()

    def loadState(self, state: GameState):
        """Install an arbitrary state, e.g. a prepared position."""
        if self.autoPlayer is not None:
            self.autoPlayer.reset()
        self.state = state
        self.selected = None
        self.gameEnded = isWon(state)
        self.interface.onStart()
        self.interface.notifyRedraw()

    def isWon(self):
        return isWon(self.state)

    def isGameOverNoMoves(self):
        return not isWon(self.state) and not hasAnyMove(self.state)

    def isValidSource(self, source) -> bool:
        state = self.state
        if isinstance(source, TableauSource):
            if not 0 <= source.columnIndex < len(state.tableau):
                return False
            col = state.tableau[source.columnIndex]
            return 0 <= source.cardIndex < len(col) and col[source.cardIndex].faceUp
        if isinstance(source, WasteSource):
            return len(state.waste) > 0
        if isinstance(source, FoundationSource):
            return 0 <= source.pileIndex < len(state.foundation) and len(state.foundation[source.pileIndex]) > 0
        return False

    def isValidTarget(self, target) -> bool:
        if isinstance(target, TableauTarget):
            return 0 <= target.columnIndex < len(self.state.tableau)
        if isinstance(target, FoundationTarget):
            return 0 <= target.pileIndex < len(self.state.foundation)
        return False

    def applyState(self, newState: GameState, event: GameEvent) -> bool:
        if newState is self.state:
            return False
        self.state = newState
        self.selected = None
        self.interface.onEvent(event)
        self.checkEnd(event)
        return True

    def checkEnd(self, event=None):
        if isWon(self.state):
            if not self.gameEnded:
                self.gameEnded = True
                if self.autoPlayer is not None:
                    self.autoPlayer.stopAutoPlay("won")
                self.interface.onWin()
            return
        self.gameEnded = False
        if hasAnyMove(self.state):
            return
        # a reshuffle that lands in another dead end is reported, not repeated
        if self.config.autoReshuffle and not isinstance(event, Reshuffle):
            self.askReshuffle()
            return
        self.interface.onNoMoves()

    def askMove(self, source, target) -> bool:
        if not self.isValidSource(source) or not self.isValidTarget(target):
            return False
        count = len(cardsFrom(self.state, source))
        return self.applyState(attemptMove(self.state, source, target), CardMove(source, target, count))

    def askDoubleClick(self, source) -> bool:
        if not self.isValidSource(source):
            return False
        newState = handleDoubleClick(self.state, source)
        if newState is self.state:
            return False
        target = None
        for i, pile in enumerate(newState.foundation):
            if len(pile) != len(self.state.foundation[i]):
                target = FoundationTarget(i)
        return self.applyState(newState, CardMove(source, target, 1))

    def askDraw(self) -> bool:
        return self.applyState(drawCard(self.state), DrawCard())

    def askRecycle(self) -> bool:
        return self.applyState(recycleWaste(self.state), RecycleWaste(len(self.state.waste)))

    def askStock(self) -> bool:
        if len(self.state.stock) > 0:
            return self.askDraw()
        return self.askRecycle()

    def askUndo(self) -> bool:
        previous = undo(self.state)
        if previous is self.state:
            return False
        self.state = previous
        self.selected = None
        self.gameEnded = isWon(previous)
        self.interface.onUndoEvent(UndoAction())
        return True

    def askReshuffle(self) -> bool:
        if not self.isGameOverNoMoves():
            return False
        count = len(self.state.stock) + len(self.state.waste) + sum(len(col) for col in self.state.tableau)
        logger.debug("reshuffling %d cards", count)
        return self.applyState(reshuffleBoard(self.state, self.random), Reshuffle(count))

    def askSelect(self, endpoint) -> bool:
        """Click-to-move: the first click picks a source, the second one a target."""
        if self.selected is None:
            if not self.isValidSource(endpoint):
                return False
            self.selected = endpoint
            self.interface.notifyRedraw()
            return False
        source = self.selected
        self.selected = None
        if endpoint == source:
            self.interface.notifyRedraw()
            return False
        target = asTarget(endpoint)
        if target is None:
            return self.askSelect(endpoint)
        if not self.askMove(source, target):
            self.interface.notifyRedraw()
            return False
        return True
