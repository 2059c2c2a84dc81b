"""
メインウィンドウの実装。
リスティングビューと、アドレス/シンボルへのジャンプ用ツールバーを保持します。
"""
from PySide6.QtWidgets import QMainWindow, QToolBar, QLabel, QLineEdit

from retro_flow_tracer.arch.mos6502.disassembler import DisassemblyResult
from retro_flow_tracer.listing.renderer import render_listing
from retro_flow_tracer.loader.hints import parse_address
from .listing_view import ListingView


# @intent:utility_function ジャンプ先アドレスを解析します。リスティングに合わせ、接頭辞の無い数字は16進数として扱います。
def parse_goto_address(text: str) -> int:
    if text.startswith("$") or text.lower().startswith("0x"):
        return parse_address(text)
    return parse_address("$" + text)


# @intent:responsibility 逆アセンブル結果を表示するメインウィンドウ。
class ListingWindow(QMainWindow):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Retro Flow Tracer")
        self.setGeometry(100, 100, 900, 800)

        self.listing_view = ListingView(self)
        self.setCentralWidget(self.listing_view)

        self._create_toolbar()

    def _create_toolbar(self):
        toolbar = QToolBar("Navigation")
        self.addToolBar(toolbar)
        toolbar.addWidget(QLabel("Go to: "))
        self.goto_edit = QLineEdit()
        self.goto_edit.setPlaceholderText("8000 or symbol")
        self.goto_edit.returnPressed.connect(self._on_goto)
        toolbar.addWidget(self.goto_edit)

    # @intent:responsibility 逆アセンブル結果をビューに読み込み、リセットハンドラへ移動します。
    def show_result(self, result: DisassemblyResult):
        self.listing_view.load_listing(render_listing(result.rom, result.tags, result.symbols))
        self.statusBar().showMessage(
            f"{result.decoded} instructions, {len(result.symbols)} symbols, "
            f"{len(result.errors)} failed branches, {len(result.unresolved)} unresolved targets"
        )
        self.listing_view.goto_row(self.listing_view.find_label("reset"))

    # @intent:responsibility 入力欄の内容をシンボル名、またはアドレスとして解釈してジャンプします。
    def goto(self, query: str) -> bool:
        query = query.strip()
        if not query:
            return False
        row = self.listing_view.find_label(query)
        if row == -1:
            try:
                row = self.listing_view.find_row(parse_goto_address(query))
            except ValueError:
                row = -1
        if row == -1:
            self.statusBar().showMessage(f"Not found: {query}")
            return False
        return self.listing_view.goto_row(row)

    def _on_goto(self):
        self.goto(self.goto_edit.text())
