# race_graph_items.py

from PyQt6.QtCore import QLineF, QRectF, Qt
from PyQt6.QtGui import QBrush, QColor, QFont, QPen
from PyQt6.QtWidgets import QGraphicsEllipseItem, QGraphicsItem, QGraphicsLineItem, QGraphicsRectItem, QGraphicsSimpleTextItem

from race_graph_data import ColorWeight, GraphEdge, GraphNode

# --- Colors ---
BACKGROUND_COLOR = QColor("#0b0d17")
TRUNK_COLOR = QColor("gold")
CALM_COLOR = QColor("skyblue")
HOT_COLOR = QColor("tomato")
MERGE_FILL_COLOR = QColor("white")
MERGE_GLOW_COLOR = QColor("cyan")
HOVER_COLOR = QColor("yellow")

MERGE_EDGE_COLOR = QColor("#00ff00")
HISTORY_EDGE_COLOR = QColor("#555555")
MERGE_EDGE_THICKNESS = 2.5
HISTORY_EDGE_THICKNESS = 1.0

LABEL_COLOR = QColor("white")
LABEL_FONT_FAMILY = "Arial"
MERGE_RADIUS_RATIO = 0.7


def lerp_color(start: QColor, end: QColor, t: float) -> QColor:
    t = min(max(t, 0.0), 1.0)
    return QColor.fromRgbF(
        start.redF() + (end.redF() - start.redF()) * t,
        start.greenF() + (end.greenF() - start.greenF()) * t,
        start.blueF() + (end.blueF() - start.blueF()) * t,
    )


def node_color(weight: ColorWeight) -> QColor:
    if weight.is_trunk:
        return QColor(TRUNK_COLOR)
    return lerp_color(CALM_COLOR, HOT_COLOR, weight.t)


def commit_tooltip(node: GraphNode) -> str:
    record = node.record
    stats = record.stats
    return (
        f"SHA: {record.sha}\n"
        f"Author: {record.display_author}\n"
        f"Date: {record.author_date.isoformat()}\n"
        f"Branch: {node.branch_name or '-'}\n"
        f"Changes: +{stats.additions if stats else 0} -{stats.deletions if stats else 0}\n"
        f"Message: {record.message.splitlines()[0] if record.message else ''}"
    )


class CommitBlock(QGraphicsRectItem):
    """A regular commit: a box whose height follows the size of the change."""

    def __init__(self, node: GraphNode, rect: QRectF, parent: QGraphicsItem = None):
        super().__init__(rect, parent)
        self.node = node
        self.base_color = node_color(node.color_weight)
        self.setBrush(QBrush(self.base_color))
        self.setPen(QPen(self.base_color.lighter(130), 1))
        self.setAcceptHoverEvents(True)
        self.setToolTip(commit_tooltip(node))

    def set_hovered(self, hovered: bool):
        color = HOVER_COLOR if hovered else self.base_color
        self.setBrush(QBrush(color))

    def hoverEnterEvent(self, event):
        self.set_hovered(True)
        super().hoverEnterEvent(event)

    def hoverLeaveEvent(self, event):
        self.set_hovered(False)
        super().hoverLeaveEvent(event)


class MergeSphere(QGraphicsEllipseItem):
    """A merge commit, drawn round and white so it stands out from regular commits."""

    def __init__(self, node: GraphNode, rect: QRectF, parent: QGraphicsItem = None):
        super().__init__(rect, parent)
        self.node = node
        self.setBrush(QBrush(MERGE_FILL_COLOR))
        self.setPen(QPen(MERGE_GLOW_COLOR, 2))
        self.setAcceptHoverEvents(True)
        self.setToolTip(commit_tooltip(node))

    def set_hovered(self, hovered: bool):
        self.setPen(QPen(HOVER_COLOR if hovered else MERGE_GLOW_COLOR, 2))

    def hoverEnterEvent(self, event):
        self.set_hovered(True)
        super().hoverEnterEvent(event)

    def hoverLeaveEvent(self, event):
        self.set_hovered(False)
        super().hoverLeaveEvent(event)


class EdgeLine(QGraphicsLineItem):
    def __init__(self, edge: GraphEdge, line: QLineF, parent: QGraphicsItem = None):
        super().__init__(line, parent)
        self.edge = edge
        if edge.is_merge_edge:
            pen = QPen(MERGE_EDGE_COLOR, MERGE_EDGE_THICKNESS)
        else:
            pen = QPen(HISTORY_EDGE_COLOR, HISTORY_EDGE_THICKNESS)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        self.setPen(pen)


class BranchLabel(QGraphicsSimpleTextItem):
    def __init__(self, name: str, point_size: float, parent: QGraphicsItem = None):
        super().__init__(name, parent)
        self.setFont(QFont(LABEL_FONT_FAMILY, max(1, int(point_size))))
        self.setBrush(QBrush(LABEL_COLOR))

    def set_point_size(self, point_size: float):
        size = max(1, int(point_size))
        if self.font().pointSize() != size:
            self.setFont(QFont(LABEL_FONT_FAMILY, size))

    def center_on(self, x: float, y: float):
        bounds = self.boundingRect()
        self.setPos(x - bounds.width() / 2, y - bounds.height() / 2)
