"""
FireIME 命令行工具
"""

import argparse
import os
import sys

from fireime.engine import (
    EngineConfig, InputScheme, Candidate, LexiconStore, LookupSession,
    FireError, configure_logging, default_db_path, read_table_file,
)

SCHEME_CHOICES = [s.value for s in InputScheme]


def _session(args) -> LookupSession:
    config = EngineConfig(
        code_mode=args.scheme,
        candidate_count=args.count,
        z_key_query=not args.no_z_key,
        db_path=args.db,
        log_level=args.log_level,
        log_json=args.log_json,
    ).validate()
    configure_logging(config)
    return LookupSession(LexiconStore(config.db_path), config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fireime",
        description="FireIME - 五笔 / 拼音候选查询引擎",
    )
    subparsers = parser.add_subparsers(dest="command", help="可用命令")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--db", default=default_db_path(), help="词库路径 (默认: $FIREIME_DB)")
    common.add_argument("-s", "--scheme", choices=SCHEME_CHOICES, default=InputScheme.WUBI_PINYIN.value,
                        help="输入方案")
    common.add_argument("-c", "--count", type=int, default=5, help="每页候选数量")
    common.add_argument("--no-z-key", action="store_true", help="关闭 z 键通配")
    common.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "WARNING"), help="日志级别 (默认: WARNING)")
    common.add_argument("--log-json", action="store_true", help="日志输出为 JSON")

    # server 命令
    server_parser = subparsers.add_parser("server", help="启动 API 服务")
    server_parser.add_argument("--host", default="127.0.0.1", help="绑定地址 (默认: 127.0.0.1)")
    server_parser.add_argument("--port", type=int, default=3000, help="端口 (默认: 3000)")
    server_parser.add_argument("--db", default=None, help="词库路径")

    # query 命令
    query_parser = subparsers.add_parser("query", parents=[common], help="查询候选")
    query_parser.add_argument("code", help="编码")
    query_parser.add_argument("-p", "--page", type=int, default=1, help="页码")

    # promote 命令
    promote_parser = subparsers.add_parser("promote", parents=[common], help="把词条调为首选")
    promote_parser.add_argument("code", help="编码")
    promote_parser.add_argument("text", help="词条")

    # init 命令
    init_parser = subparsers.add_parser("init", help="创建空词库")
    init_parser.add_argument("db", help="词库路径")

    # import 命令
    import_parser = subparsers.add_parser("import", help="从码表文本导入词条")
    import_parser.add_argument("db", help="词库路径")
    import_parser.add_argument("file", help="码表文件（编码<TAB>词条）")
    import_parser.add_argument("-s", "--scheme", choices=SCHEME_CHOICES, default=InputScheme.WUBI.value,
                               help="写入哪个方案的表")

    # version 命令
    subparsers.add_parser("version", help="显示版本")

    return parser


def main(argv=None) -> int:
    """命令行入口"""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "server":
            from fireime.api.server import main as server_main
            os.environ["HOST"] = args.host
            os.environ["PORT"] = str(args.port)
            if args.db:
                os.environ["FIREIME_DB"] = args.db
            server_main()

        elif args.command == "query":
            with _session(args) as session:
                result = session.lookup(args.code, args.page)
            for i, c in enumerate(result.candidates, 1):
                print(f"{i}. {c.text} ({c.code}, {c.type})")
            if result.has_next:
                print("...")

        elif args.command == "promote":
            with _session(args) as session:
                ok = session.promote(args.code, Candidate(code=args.code, text=args.text))
            print("ok" if ok else "failed")
            return 0 if ok else 1

        elif args.command == "init":
            with LexiconStore(args.db, create=True):
                pass
            print(f"已创建: {args.db}")

        elif args.command == "import":
            with LexiconStore(args.db, create=True) as store:
                n = store.import_rows(args.scheme, read_table_file(args.file))
            print(f"导入 {n} 条")

        elif args.command == "version":
            from fireime import __version__
            print(f"FireIME v{__version__}")

        else:
            parser.print_help()
            return 1

    except (FireError, ValueError) as e:
        print(f"错误: {e}", file=sys.stderr)
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
