"""项目入口，解析命令行参数并启动表型判定流程。"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import is_dataclass
from pathlib import Path
from typing import Any, get_args, get_type_hints

from immunophenotype.config import PipelineConfig
from immunophenotype.pipeline import PhenotypePipeline


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Immune phenotype consensus pipeline")
    parser.add_argument("--config", type=Path, help="可选 JSON 配置文件，覆盖默认参数。")
    parser.add_argument("--expression", type=Path, help="样本 × 基因表达矩阵 CSV。")
    parser.add_argument("--genes", type=Path, help="分类基因列表 CSV（Gene, Type）。")
    parser.add_argument("--clinical", type=Path, help="可选临床信息 CSV。")
    parser.add_argument("--output-dir", type=Path, help="结果输出目录。")
    parser.add_argument("--no-figures", action="store_true", help="不绘制诊断图。")
    parser.add_argument("--log-level", default="INFO", help="Python logging 等级。")
    return parser.parse_args(argv)


def _is_path_field(obj: Any, key: str) -> bool:
    """字段注解为 Path 或 Optional[Path] 时，JSON 中的字符串需转换为 Path。"""

    hint = get_type_hints(type(obj)).get(key)
    return hint is Path or Path in get_args(hint)


def load_config(path: Path | None) -> PipelineConfig:
    cfg = PipelineConfig()
    if not path:
        return cfg
    payload = json.loads(path.read_text(encoding="utf-8"))

    def update(obj: Any, data: dict):
        for key, value in data.items():
            attr = getattr(obj, key)
            if is_dataclass(attr):
                update(attr, value)
            elif value is not None and _is_path_field(obj, key):
                setattr(obj, key, Path(value))
            else:
                setattr(obj, key, value)

    update(cfg, payload)
    return cfg


def apply_overrides(cfg: PipelineConfig, args: argparse.Namespace) -> PipelineConfig:
    if args.expression:
        cfg.data.expression = args.expression
    if args.genes:
        cfg.data.classification_genes = args.genes
    if args.clinical:
        cfg.data.clinical = args.clinical
    if args.output_dir:
        cfg.data.output_dir = args.output_dir
    if args.no_figures:
        cfg.report.make_figures = False
    return cfg


def main(argv=None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))
    cfg = apply_overrides(load_config(args.config), args)
    pipeline = PhenotypePipeline(cfg)
    pipeline.run()


if __name__ == "__main__":
    main()
