"""
ログ抽出ツール（logprune）

このツールがやること（ざっくり）：
- キーワードファイル（1行1キーワード）とログファイルを読む
- ログの各行について、キーワードを「部分一致」で探す（正規表現は使わない）
- 一致した行をコンソールに出し（行番号つきも可）、出力ファイルへ追記する
- 最後に一致件数を出す

流れ：
  バナー → 設定(CLI) → (必要なら出力ファイル削除) → キーワード読込 → ログ読込 → 照合/報告

設計メモ：
- 設定は Config（frozen dataclass）にまとめて引数で渡す（モジュール変数に置かない）
- 照合（find_matches）は副作用なし。出力（print / 追記）は scan_lines_for_keywords に閉じ込める
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

import toolkit

LOGGER_NAME = "logprune"

VERSION = "1.1"
COPYRIGHT = "(c) Colin Wilcox 2024."

DEFAULT_KEYWORDS_FILE = "./KEYWORDS.TXT"
DEFAULT_OUTPUT_FILE = "./OUTPUT.TXT"
DEFAULT_LOG_FILE = "./LOGFILE.TXT"

EXIT_OK = 0
EXIT_LOG_READ_ERROR = -1
EXIT_KEYWORDS_READ_ERROR = -2


# -------------------------
# データモデル（DTO）
# -------------------------


@dataclass(frozen=True)
class Config:
    """
    実行設定。起動時に1回作って、以後は読むだけ。

    - keywords_file / log_file / output_file: 各ファイル名（CLIで渡されたままの文字列。表示用）
      実際に開くときは keywords_path などの Path プロパティを使う
    - erase: 書き込み前に出力ファイルを消すか
    - silent: コンソールへのエコー（設定表示・一致行・件数）を止めるか
    - line_numbers: 一致行の先頭に "0001:" 形式の行番号を付けるか
    - case_sensitive: 大文字小文字を区別して照合するか
    - verbose: 診断ログ（stderr）を INFO まで出すか
    """

    keywords_file: str
    log_file: str
    output_file: str
    erase: bool = False
    silent: bool = False
    line_numbers: bool = True
    case_sensitive: bool = False
    verbose: bool = False

    @property
    def keywords_path(self) -> Path:
        return Path(self.keywords_file).expanduser()

    @property
    def log_path(self) -> Path:
        return Path(self.log_file).expanduser()

    @property
    def output_path(self) -> Path:
        return Path(self.output_file).expanduser()


@dataclass(frozen=True)
class Match:
    """
    1件の一致（ログ行 × キーワード）。

    1行が複数キーワードに一致したら、キーワードの数だけ Match ができる。
    line_number は「空行を除いた後」の0始まりの位置。
    """

    line_number: int
    line: str
    keyword: str


# -------------------------
# CLIパース（I/O境界：入力）
# -------------------------


def _add_bool_flag(parser: argparse.ArgumentParser, name: str, default: bool, help_text: str) -> None:
    # `-erase` 単体なら True、`-erase=false` のように値も書ける
    parser.add_argument(
        f"-{name}",
        f"--{name}",
        dest=name,
        nargs="?",
        const=True,
        default=default,
        type=toolkit.parse_bool,
        metavar="BOOL",
        help=f"{help_text} (default: {str(default).lower()})",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    CLI引数を定義して、解析結果（args）を返す。

    `-keywords x` と `--keywords x` のどちらも受け付ける。
    不正な引数は argparse が usage を出して終了コード 2 で止める（ファイルI/Oの前）。
    """
    parser = argparse.ArgumentParser(
        prog="logprune",
        description="Report (and append to an output file) every log line containing any keyword.",
        allow_abbrev=False,
    )

    parser.add_argument(
        "-keywords",
        "--keywords",
        dest="keywords",
        type=str,
        default=DEFAULT_KEYWORDS_FILE,
        help=f"Name of keyword file (default: {DEFAULT_KEYWORDS_FILE}).",
    )
    parser.add_argument(
        "-output",
        "--output",
        dest="output",
        type=str,
        default=DEFAULT_OUTPUT_FILE,
        help=f"Name of output results file (default: {DEFAULT_OUTPUT_FILE}).",
    )
    parser.add_argument(
        "-log",
        "--log",
        dest="log",
        type=str,
        default=DEFAULT_LOG_FILE,
        help=f"Name of log file to process (default: {DEFAULT_LOG_FILE}).",
    )

    _add_bool_flag(parser, "erase", False, "Erase output file before writing.")
    _add_bool_flag(parser, "silent", False, "Run the utility with no echo to console.")
    _add_bool_flag(parser, "linenumbers", True, "Display line numbers of those lines containing a text match.")
    _add_bool_flag(parser, "case", False, "Match keywords case-sensitively.")
    _add_bool_flag(parser, "verbose", False, "Write diagnostic logs to stderr.")

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Config:
    """
    args から Config を組み立てる。

    - keywords が空文字なら既定のファイル名に戻す
    """
    keywords = args.keywords or DEFAULT_KEYWORDS_FILE
    return Config(
        keywords_file=keywords,
        log_file=args.log,
        output_file=args.output,
        erase=args.erase,
        silent=args.silent,
        line_numbers=args.linenumbers,
        case_sensitive=args.case,
        verbose=args.verbose,
    )


# -------------------------
# 入力（I/O境界：ファイル）
# -------------------------


def load_lines(path: Path) -> list[str]:
    """
    テキストファイルを読み、空でない行を順番どおりのリストで返す。

    仕様として守りたいこと：
    - 行の区切りは \\n だけ。末尾の \\n と、その直前の \\r を1つだけ落とす
      （行中の \\r は区切りにしない。行番号がずれないように）
    - 行中・行頭/行末の空白は残す
    - UTF-8 として読めないバイトは surrogateescape で保持する（出力ファイルへそのまま戻せる）
    - 長さ0の行は捨てる（エラーではない）
    - 開けない/読めない場合の OSError は呼び出し側へそのまま伝える
    """
    lines: list[str] = []
    with path.open("r", encoding="utf-8", errors="surrogateescape", newline="\n") as f:
        for raw in f:
            line = raw
            if line.endswith("\n"):
                line = line[:-1]
            if line.endswith("\r"):
                line = line[:-1]
            if len(line) > 0:
                lines.append(line)
    return lines


# -------------------------
# 照合（コアロジック：副作用なし）
# -------------------------


def find_matches(log_lines: Iterable[str], keywords: list[str], case_sensitive: bool) -> Iterator[Match]:
    """
    ログ行 × キーワードの部分一致を、行順 → キーワード順で yield する。

    - case_sensitive=False なら、行とキーワードの両方を小文字にして比べる
    - 重複は除かない（2つのキーワードに一致した行は2件）
    """
    needles = keywords if case_sensitive else [k.lower() for k in keywords]

    for line_number, line in enumerate(log_lines):
        haystack = line if case_sensitive else line.lower()
        for keyword, needle in zip(keywords, needles):
            if needle in haystack:
                yield Match(line_number=line_number, line=line, keyword=keyword)


def format_match(match: Match, line_numbers: bool) -> str:
    """コンソール表示用の1行（"0001:..." または行そのもの）。"""
    if line_numbers:
        return f"{match.line_number:04d}:{match.line}"
    return match.line


# -------------------------
# 出力（I/O境界：stdout / ファイル）
# -------------------------


def scan_lines_for_keywords(
    log_lines: list[str],
    keywords: list[str],
    config: Config,
    logger: logging.Logger,
) -> int:
    """
    照合して、一致ごとに表示と追記を行い、一致件数を返す。

    仕様：
    - silent でなければ一致行を stdout に出す
    - 一致行（行番号なし）を出力ファイルへ1件ずつ追記する（毎回 開く→書く→閉じる）
    - 追記に失敗しても、その1件を飛ばすだけで続行する（件数には数える）
    - silent でなければ最後に件数を出す
    """
    count = 0
    failed = 0

    for match in find_matches(log_lines, keywords, config.case_sensitive):
        if not config.silent:
            print(_printable(format_match(match, config.line_numbers)))
        if not toolkit.append_line(config.output_path, match.line, logger):
            failed += 1
        count += 1

    if failed:
        logger.warning("%d of %d matches could not be written to %s", failed, count, config.output_path)

    if not config.silent:
        print(f"\nMatching line count = {count}.")

    return count


def _printable(text: str) -> str:
    # surrogateescape で保持したバイトは、表示時だけ U+FFFD に置き換える
    return text.encode("utf-8", errors="surrogateescape").decode("utf-8", errors="replace")


def show_banner() -> None:
    print(f"Log Pruner (Version {VERSION}).")
    print(COPYRIGHT)


def print_config(config: Config) -> None:
    def flag(v: bool) -> str:
        return str(v).lower()

    print(f"\nLog            : '{config.log_file}'.")
    print(f"Output file    : '{config.output_file}'.")
    print(f"Keyword file   : '{config.keywords_file}'.")
    print(f"Erase file     : {flag(config.erase)}.")
    print(f"Line numbers   : {flag(config.line_numbers)}.")
    print(f"Case sensitive : {flag(config.case_sensitive)}.\n")


def erase_output(path: Path, logger: logging.Logger) -> None:
    """
    出力ファイルを消す。消せなくても（存在しない等）処理は続ける。
    """
    try:
        path.unlink()
        logger.info("output erased: %s", path)
    except FileNotFoundError:
        logger.info("output not present, nothing to erase: %s", path)
    except OSError as exc:
        logger.warning("output erase failed (ignored): %s (%s)", path, exc)


# -------------------------
# 実行フロー組み立て（入口を薄くする）
# -------------------------


def main(argv: list[str] | None = None) -> int:
    """
    実行入口（テストからも呼べる形）。

    終了コード：
    - EXIT_OK (0): 正常終了（一致0件でも）
    - EXIT_KEYWORDS_READ_ERROR (-2): キーワードファイルが読めない
    - EXIT_LOG_READ_ERROR (-1): ログファイルが読めない
    - 2: 引数が不正（argparse が SystemExit を投げる）
    """
    # バナーは silent でも出す
    show_banner()

    config = build_config(parse_args(argv))
    logger = toolkit.setup_logger(LOGGER_NAME, config.verbose)

    if not config.silent:
        print_config(config)

    if config.erase:
        erase_output(config.output_path, logger)

    try:
        keywords = load_lines(config.keywords_path)
    except OSError as exc:
        print(f"*** Error : Problem reading keywords ({exc}).", file=sys.stderr)
        return EXIT_KEYWORDS_READ_ERROR
    logger.info("keywords loaded: path=%s count=%d", config.keywords_path, len(keywords))

    try:
        log_lines = load_lines(config.log_path)
    except OSError as exc:
        print(f"*** Error : Problem reading logfile ({exc}).", file=sys.stderr)
        return EXIT_LOG_READ_ERROR
    logger.info("log loaded: path=%s lines=%d", config.log_path, len(log_lines))

    count = scan_lines_for_keywords(log_lines, keywords, config, logger)
    logger.info("scan done: matches=%d output=%s", count, config.output_path)
    return EXIT_OK
