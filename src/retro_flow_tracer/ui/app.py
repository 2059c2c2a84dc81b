# src/retro_flow_tracer/ui/app.py
"""
リスティングビューアのエントリポイント。
ROMを逆アセンブルし、結果をメインウィンドウに表示します。
"""
import logging
import sys

from PySide6.QtWidgets import QApplication

from retro_flow_tracer.cli import build_parser, disassemble_project, resolve_project, setup_logging
from .main_window import ListingWindow

logger = logging.getLogger(__name__)


# @intent:responsibility アプリケーションを起動し、逆アセンブル結果をメインウィンドウに表示します。
def main(argv=None):
    parser = build_parser()
    parser.prog = "retro-flow-tracer-view"
    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.quiet, args.log_file)

    try:
        result = disassemble_project(resolve_project(args))
    except (OSError, ValueError) as e:
        logger.error("%s", e)
        return 1

    app = QApplication.instance() or QApplication(sys.argv[:1])
    main_win = ListingWindow()
    main_win.show_result(result)
    main_win.show()
    return app.exec()

if __name__ == '__main__':
    sys.exit(main())
