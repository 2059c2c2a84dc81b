"""
逆アセンブル結果のリスティングを表示するウィジェット。
"""
from typing import Dict, List, Optional

from PySide6.QtWidgets import QWidget, QVBoxLayout, QTableWidget, QTableWidgetItem, QHeaderView
from PySide6.QtGui import QColor, QFont, QFontDatabase

from retro_flow_tracer.listing.renderer import LineKind, ListingLine

LABEL_COLOR = QColor("#E0C060")
DATA_COLOR = QColor("#606060")
UNKNOWN_TARGET_BG = QColor("#402020")
NORMAL_BG = QColor("#101010")
HIGHLIGHT_BG = QColor("#404000")


# @intent:responsibility 現在のシステムで利用可能な最適な等幅フォントを返します。
def get_monospace_font(size: int = 10) -> QFont:
    """
    優先順位: Consolas -> Menlo -> Monaco -> Courier New -> Qtの固定幅システムフォント
    """
    available_families = QFontDatabase.families()
    for family in ["Consolas", "Menlo", "Monaco", "Courier New"]:
        if family in available_families:
            return QFont(family, size)
    font = QFontDatabase.systemFont(QFontDatabase.FixedFont)
    font.setPointSize(size)
    return font


# @intent:responsibility リスティング行を表形式で表示し、アドレスへのジャンプを提供するUIウィジェット。
class ListingView(QWidget):
    """
    リスティングを表示するウィジェット。
    ラベル行は表全体にまたがって表示し、未到達バイトは暗く、分岐先不明の命令は強調表示します。
    """
    def __init__(self, parent=None):
        super().__init__(parent)
        self.layout = QVBoxLayout(self)
        self.layout.setContentsMargins(0, 0, 0, 0)

        self.table = QTableWidget()
        self.table.setColumnCount(3)
        self.table.setHorizontalHeaderLabels(["Address", "Bytes", "Text"])
        self.table.horizontalHeader().setSectionResizeMode(0, QHeaderView.ResizeToContents) # Address
        self.table.horizontalHeader().setSectionResizeMode(1, QHeaderView.ResizeToContents) # Bytes
        self.table.horizontalHeader().setSectionResizeMode(2, QHeaderView.Stretch)          # Text

        self.table.setFont(get_monospace_font(10))
        self.table.verticalHeader().setVisible(False)
        self.table.setEditTriggers(QTableWidget.NoEditTriggers)
        self.table.setSelectionBehavior(QTableWidget.SelectRows)
        self.table.setShowGrid(False)
        self.table.setStyleSheet("background-color: #101010; color: #BBBBBB; gridline-color: #303030;")

        self.layout.addWidget(self.table)

        self.lines: List[ListingLine] = []
        # アドレス -> そのアドレスの最初の行
        self._row_by_address: Dict[int, int] = {}
        # シンボル名 -> ラベル行
        self._row_by_label: Dict[str, int] = {}
        self._highlighted_row = -1

    # @intent:responsibility リスティング全体でテーブルを作り直します。
    def load_listing(self, lines: List[ListingLine]):
        self.lines = list(lines)
        self._row_by_address = {}
        self._row_by_label = {}
        self._highlighted_row = -1

        self.table.clearSpans()
        self.table.setRowCount(len(self.lines))

        for row, line in enumerate(self.lines):
            self._row_by_address.setdefault(line.address, row)

            if line.kind is LineKind.LABEL:
                self._row_by_label.setdefault(line.text, row)
                label_item = QTableWidgetItem(f"{line.text}:")
                label_item.setForeground(LABEL_COLOR)
                self.table.setItem(row, 0, label_item)
                self.table.setSpan(row, 0, 1, 3)
                continue

            text = f"{line.text}  {line.annotation}" if line.annotation else line.text
            items = [
                QTableWidgetItem(f"{line.address:04X}"),
                QTableWidgetItem(line.raw.hex()),
                QTableWidgetItem(text),
            ]
            for column, item in enumerate(items):
                if line.kind is LineKind.DATA:
                    item.setForeground(DATA_COLOR)
                if line.annotation:
                    item.setBackground(UNKNOWN_TARGET_BG)
                self.table.setItem(row, column, item)

    # @intent:responsibility 指定アドレスの最初の行番号を返します（ラベル行を含む）。
    def find_row(self, address: int) -> int:
        return self._row_by_address.get(address, -1)

    def find_label(self, name: str) -> int:
        return self._row_by_label.get(name, -1)

    # @intent:responsibility 指定された行を選択し、見える位置までスクロールします。
    def goto_row(self, row: int) -> bool:
        if not 0 <= row < self.table.rowCount():
            return False

        if self._highlighted_row != -1:
            self._set_row_background(self._highlighted_row, None)
        self._set_row_background(row, HIGHLIGHT_BG)
        self._highlighted_row = row

        self.table.scrollToItem(self.table.item(row, 0), QTableWidget.PositionAtCenter)
        return True

    def goto_address(self, address: int) -> bool:
        return self.goto_row(self.find_row(address))

    def _set_row_background(self, row: int, color: Optional[QColor]):
        line = self.lines[row]
        if color is None:
            color = UNKNOWN_TARGET_BG if line.annotation else NORMAL_BG
        for column in range(self.table.columnCount()):
            item = self.table.item(row, column)
            if item is not None:
                item.setBackground(color)
