from tkinter import *
from tkinter import messagebox

from klondike.AutoPlay import AutoPlayer, TkScheduler
from klondike.Core import (
    COLUMN_COUNT,
    PILE_COUNT,
    Core,
    FoundationSource,
    FoundationTarget,
    GameConfig,
    TableauSource,
    TableauTarget,
    WasteSource,
    cardsFrom,
)
from klondike.Interface import Interface
from view.adapter import CoreAdapter

CARD_COLOR = "#FDFDF5"
BACK_COLOR = "#3B6EA5"
TABLE_COLOR = "#2E7D4F"

CARD_WIDTH_PERCENT = 0.1
CARD_HEIGHT_PERCENT = 0.22
CARD_HEIGHT_MULTIPLIER = 1.5
FACE_UP_SHOWING_PERCENT = 0.25
FACE_DOWN_SHOWING_PERCENT = 0.1
CARD_FONT_PERCENT = 0.22

SUIT_SYMBOLS = {"hearts": "♥", "diamonds": "♦", "clubs": "♣", "spades": "♠"}


class Rect:

    def __init__(self, upperLeft, width=50, height=80):
        self.upperLeft = upperLeft
        self.width = width
        self.height = height

    def drawCard(self, canvas: Canvas, card):
        (x, y) = self.upperLeft
        if not card.face_up:
            canvas.create_rectangle(x, y, x + self.width, y + self.height, fill=BACK_COLOR, outline="black")
            return
        fontSize = int(CARD_FONT_PERCENT * self.width)
        canvas.create_rectangle(x, y, x + self.width, y + self.height, fill=CARD_COLOR, outline="black")
        canvas.create_text(x + 3, y + 1, anchor=NW, text=SUIT_SYMBOLS[card.suit] + card.rank,
                           font="Arial " + str(fontSize), fill=card.color)

    def draw(self, canvas: Canvas, fill="", outline="black"):
        (x, y) = self.upperLeft
        canvas.create_rectangle(x, y, x + self.width, y + self.height, fill=fill, outline=outline)

    def contains(self, x, y):
        (tx, ty) = self.upperLeft
        return tx <= x <= tx + self.width and ty <= y <= ty + self.height

    def intersects(self, rect):
        (tx1, ty1) = self.upperLeft
        tx2 = tx1 + self.width
        ty2 = ty1 + self.height

        (rx1, ry1) = rect.upperLeft
        rx2 = rx1 + rect.width
        ry2 = ry1 + rect.height

        return rx2 >= tx1 and ry2 >= ty1 \
               and tx2 >= rx1 and ty2 >= ry1

    def moved(self, dx, dy):
        (x, y) = self.upperLeft
        return Rect((x + dx, y + dy), self.width, self.height)


class TkInterface(Interface):

    def __init__(self, width=900, height=650, configPath="config.ini"):
        super().__init__()
        self.width = width
        self.height = height
        self.cardWidth = 50
        self.cardHeight = 75
        self.canvas: Canvas = None
        self.root = None
        self.configPath = configPath
        self.config = GameConfig.loadFromFile(configPath)
        self.core: Core = None
        self.autoPlayer: AutoPlayer = None

        self.stockRect = None
        self.wasteRect = None
        self.foundationRects = []
        self.columnRects = []
        self.cardRects = []
        self.dragSource = None
        self.dragCards = []
        self.dragStart = (0, 0)
        self.mousePos = (0, 0)
        self.hasWon = False
        self.tips = None

    def run(self):
        root = Tk()
        root.title("Klondike")
        self.root = root
        root.resizable(width=True, height=True)
        canvas = Canvas(root, width=self.width, height=self.height)
        canvas.configure(bd=0, highlightthickness=0)
        canvas.pack(expand=1, fill="both")
        self.canvas = canvas
        root.bind("<Button-1>", self.mousePressed)
        root.bind("<B1-Motion>", self.mouseMoved)
        root.bind("<ButtonRelease-1>", self.mouseReleased)
        root.bind("<Double-Button-1>", self.mouseDoubleClicked)
        root.bind("<Key>", self.keyPressed)
        root.bind("<Configure>", self.resize)
        root.protocol("WM_DELETE_WINDOW", self.onClosing)
        self.startGame()
        root.mainloop()

    def onClosing(self):
        if self.autoPlayer is not None:
            self.autoPlayer.stopAutoPlay("closed")
        self.config.saveToFile(self.configPath)
        self.root.destroy()

    def resize(self, event):
        if event.widget != self.root:
            return
        self.width = event.width
        self.height = event.height
        self.computeCardWidth()
        self.redrawAll()

    def startGame(self):
        if self.autoPlayer is not None:
            self.autoPlayer.stopAutoPlay("new_game")
        core = Core()
        self.core = core
        core.registerInterface(self)
        self.autoPlayer = AutoPlayer(core, TkScheduler(self.root))
        self.hasWon = False
        self.tips = None
        self.clearDrag()
        core.startGame(self.config)
        self.computeCardWidth()

    def computeCardWidth(self):
        cardWidth = self.width * CARD_WIDTH_PERCENT
        cardHeight = self.height * CARD_HEIGHT_PERCENT
        if cardHeight >= cardWidth * CARD_HEIGHT_MULTIPLIER:
            cardHeight = cardWidth * CARD_HEIGHT_MULTIPLIER
        else:
            cardWidth = cardHeight / CARD_HEIGHT_MULTIPLIER
        self.cardHeight = cardHeight
        self.cardWidth = cardWidth
        self.updateRect()

    def updateRect(self):
        if self.core is None or self.core.state is None:
            return
        vm = CoreAdapter.snapshot(self.core.state)
        cardWidth = self.cardWidth
        cardHeight = self.cardHeight
        xMargin = (self.width - COLUMN_COUNT * cardWidth) / (COLUMN_COUNT + 1)

        def columnX(i):
            return xMargin + i * (cardWidth + xMargin)

        yTop = 20
        self.stockRect = Rect((columnX(0), yTop), cardWidth, cardHeight)
        self.wasteRect = Rect((columnX(1), yTop), cardWidth, cardHeight)
        self.foundationRects = [Rect((columnX(COLUMN_COUNT - PILE_COUNT + i), yTop), cardWidth, cardHeight)
                                for i in range(PILE_COUNT)]

        yTableau = yTop + cardHeight + 30
        self.columnRects = []
        self.cardRects = []
        for i, col in enumerate(vm.tableau):
            x = columnX(i)
            y = yTableau
            self.columnRects.append(Rect((x, y), cardWidth, cardHeight))
            rects = []
            for card in col.cards:
                rects.append(Rect((x, y), cardWidth, cardHeight))
                showing = FACE_UP_SHOWING_PERCENT if card.face_up else FACE_DOWN_SHOWING_PERCENT
                y += cardHeight * showing
            self.cardRects.append(rects)

    def redrawAll(self):
        canvas = self.canvas
        canvas.delete(ALL)
        canvas.create_rectangle(0, 0, self.width, self.height, fill=TABLE_COLOR, width=0)
        if self.core is not None and self.core.state is not None:
            self.gameRedrawAll()
        canvas.update()

    def draggedRects(self):
        """Rects of the cards being dragged, shifted by the mouse offset."""
        source = self.dragSource
        if source is None:
            return []
        dx = self.mousePos[0] - self.dragStart[0]
        dy = self.mousePos[1] - self.dragStart[1]
        if isinstance(source, TableauSource):
            rects = self.cardRects[source.columnIndex][source.cardIndex:]
        elif isinstance(source, WasteSource):
            rects = [self.wasteRect]
        elif isinstance(source, FoundationSource):
            rects = [self.foundationRects[source.pileIndex]]
        else:
            raise TypeError(f"unknown move source: {source!r}")
        return [r.moved(dx, dy) for r in rects]

    def gameRedrawAll(self):
        vm = CoreAdapter.snapshot(self.core.state)
        canvas = self.canvas
        source = self.dragSource
        dragged = []

        self.stockRect.draw(canvas)
        if vm.stock_count > 0:
            self.stockRect.draw(canvas, fill=BACK_COLOR)
            (x, y) = self.stockRect.upperLeft
            canvas.create_text(x + 3, y + 1, text=str(vm.stock_count), font="Arial 10", anchor=NW, fill="white")
        self.wasteRect.draw(canvas)
        cards = vm.waste.cards
        if isinstance(source, WasteSource) and cards:
            dragged = [cards[-1]]
            cards = cards[:-1]
        if cards:
            self.wasteRect.drawCard(canvas, cards[-1])
        for i, rect in enumerate(self.foundationRects):
            rect.draw(canvas)
            cards = vm.foundations[i].cards
            if isinstance(source, FoundationSource) and source.pileIndex == i and cards:
                dragged = [cards[-1]]
                cards = cards[:-1]
            if cards:
                rect.drawCard(canvas, cards[-1])

        for i, col in enumerate(vm.tableau):
            self.columnRects[i].draw(canvas)
            cards = col.cards
            if isinstance(source, TableauSource) and source.columnIndex == i:
                dragged = list(cards[source.cardIndex:])
                cards = cards[:source.cardIndex]
            for j, card in enumerate(cards):
                self.cardRects[i][j].drawCard(canvas, card)

        for rect, card in zip(self.draggedRects(), dragged):
            rect.drawCard(canvas, card)

        if self.hasWon:
            canvas.create_text(self.width / 2, self.height / 2, text="You win!", font="Arial 30", anchor=CENTER)
            canvas.create_text(self.width / 2, self.height / 2 + 40, text="Press n for a new game.",
                               font="Arial 10", anchor=CENTER)
        elif self.tips is not None:
            canvas.create_text(self.width / 2, self.height - 50, text=self.tips, font="Arial 18", anchor=CENTER)
        auto = "on" if self.autoPlayer is not None and self.autoPlayer.enabled else "off"
        txt = f"undo: u, new: n, reshuffle: r, auto-play ({auto}): a, quit: q"
        canvas.create_text(10, self.height - 20, text=txt, anchor=W, fill="white")

    def sourceAt(self, x, y):
        for i, rects in enumerate(self.cardRects):
            for j in range(len(rects) - 1, -1, -1):
                if rects[j].contains(x, y):
                    return TableauSource(i, j)
        if self.wasteRect.contains(x, y):
            return WasteSource()
        for i, rect in enumerate(self.foundationRects):
            if rect.contains(x, y):
                return FoundationSource(i)
        return None

    def targetFor(self, rects):
        if not rects:
            return None
        head = rects[0]
        for i, rect in enumerate(self.foundationRects):
            if rect.intersects(head):
                return FoundationTarget(i)
        for i, cards in enumerate(self.cardRects):
            top = cards[-1] if cards else self.columnRects[i]
            if top.intersects(head):
                if isinstance(self.dragSource, TableauSource) and self.dragSource.columnIndex == i:
                    continue
                return TableauTarget(i)
        return None

    def mousePressed(self, event):
        if self.hasWon:
            return
        x, y = event.x, event.y
        if self.stockRect.contains(x, y):
            self.core.askStock()
            return
        source = self.sourceAt(x, y)
        if source is None or not self.core.isValidSource(source):
            return
        self.dragSource = source
        self.dragCards = list(cardsFrom(self.core.state, source))
        self.dragStart = (x, y)
        self.mousePos = (x, y)
        self.redrawAll()

    def clearDrag(self):
        self.dragSource = None
        self.dragCards = []

    def dragIsCurrent(self):
        """Whether the grabbed cards still sit where the drag started."""
        if self.dragSource is None:
            return False
        return list(cardsFrom(self.core.state, self.dragSource)) == self.dragCards

    def mouseMoved(self, event):
        if self.dragSource is None:
            return
        self.mousePos = (event.x, event.y)
        self.redrawAll()

    def mouseReleased(self, event):
        if self.dragSource is None:
            return
        self.mousePos = (event.x, event.y)
        source = self.dragSource
        target = self.targetFor(self.draggedRects()) if self.dragIsCurrent() else None
        self.clearDrag()
        if target is None or not self.core.askMove(source, target):
            self.updateRect()
            self.redrawAll()

    def mouseDoubleClicked(self, event):
        if self.hasWon:
            return
        source = self.sourceAt(event.x, event.y)
        self.clearDrag()
        if source is not None:
            self.core.askDoubleClick(source)

    def keyPressed(self, event):
        if event.char == "n":
            if not self.hasWon and not messagebox.askokcancel("New game", "Do you want to restart?"):
                return
            self.startGame()
            self.redrawAll()
        if self.hasWon:
            return
        if event.char == "u":
            self.core.askUndo()
        elif event.char == "r":
            self.core.askReshuffle()
        elif event.char == "a":
            self.autoPlayer.toggle()
            self.redrawAll()
        elif event.char == " ":
            self.core.askStock()
        elif event.char == "q":
            self.onClosing()

    def onStart(self):
        self.hasWon = False
        self.tips = None

    def onNoMoves(self):
        self.tips = "No moves left! Reshuffle (r), undo (u) or start over (n)."

    def onWin(self):
        self.hasWon = True
        self.tips = None

    def notifyRedraw(self):
        # auto-play may have moved the grabbed cards under the pointer
        if self.dragSource is not None and not self.dragIsCurrent():
            self.clearDrag()
        if self.canvas is None:
            return
        if self.core.state is not None and not self.core.isGameOverNoMoves():
            self.tips = None
        self.updateRect()
        self.canvas.after(0, self.redrawAll)


if __name__ == '__main__':
    interface = TkInterface(900, 650)
    interface.run()
