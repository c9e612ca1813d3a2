"""重算项目的评审数与平均分，修复统计漂移。

用法::

    python scripts/reconcile_aggregates.py          # 全部项目
    python scripts/reconcile_aggregates.py 3 7 12   # 指定项目
"""
import argparse
import sys
from pathlib import Path

# 添加项目根目录到 path
sys.path.insert(0, str(Path(__file__).parent.parent))

from reviewhub.config import get_settings
from reviewhub.db import session_scope
from reviewhub.logging_config import configure_logging
from reviewhub.services.aggregation import aggregation_engine


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="重算项目评审统计")
    parser.add_argument("project_ids", nargs="*", type=int, help="只对账这些项目")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=False)

    print("=" * 50)
    print("评审统计对账")
    print("=" * 50)

    with session_scope() as db:
        report = aggregation_engine.reconcile(db, args.project_ids or None)

    print(f"  检查项目: {report.checked} 个")
    print(f"  修复项目: {len(report.repaired_project_ids)} 个 {report.repaired_project_ids}")
    if report.failed_project_ids:
        print(f"  ✗ 失败项目: {report.failed_project_ids}")
        return 1
    print("  ✓ 对账完成")
    return 0


if __name__ == "__main__":
    sys.exit(main())
