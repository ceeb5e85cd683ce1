"""
小ツール共通の「I/Oまわり」部品集（toolkit）

狙い：
- ツール本体（logprune）は「キーワード照合と報告」に集中できるようにする
- bool変換、logger構成、ファイルへの1行追記 のような
  「どのツールでも同じ意味で使えるもの」だけをここに置く

注意：
- ツール固有のフラグ名・出力フォーマット・終了コードは各ツール側で持つ
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "no", "n", "off"}


def parse_bool(value: str) -> bool:
    """
    フラグ値用のboolパース（`-erase=false` のような指定を解釈する）。

    true: 1, true, yes, y, on
    false: 0, false, no, n, off

    それ以外は ValueError。
    argparse の type= に渡すと、ValueError は「不正な値」として usage エラーになる。
    """
    v = value.strip().lower()
    if v in _TRUE_VALUES:
        return True
    if v in _FALSE_VALUES:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def setup_logger(name: str, verbose: bool) -> logging.Logger:
    """
    ログをstderrに出すためのloggerを構成する。

    設計意図：
    - stdoutは「結果の出力」（一致行・件数）で使う
    - 進捗/警告/失敗はstderrへ寄せる
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO if verbose else logging.WARNING)
    logger.propagate = False

    logger.handlers.clear()

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(handler)
    return logger


def append_line(path: Path, line: str, logger: logging.Logger) -> bool:
    """
    path に1行追記する（追記/新規作成モードで開き、書いて、閉じる）。

    仕様：
    - 呼び出しごとに開き直す（開きっぱなしにしない）
    - surrogateescape で読んだ行は、元のバイト列のまま書き戻す
    - 失敗したら logger.error を出して False を返す（処理は止めない）
    - 成功したら True
    """
    try:
        with path.open("a", encoding="utf-8", errors="surrogateescape", newline="") as f:
            f.write(line + "\n")
        return True
    except OSError as exc:
        logger.error("failed to append to %s: %s", path, exc)
        return False
