#!/usr/bin/env python3
"""
gridcluster CLI

Command-line interface for generating, clustering and searching point sets.

Usage:
    python cli.py generate points.json -n 1000 --seed 7        # Sample the default boxes
    python cli.py cluster points.json -a dbscan --radius 2      # Cluster, print JSON
    python cli.py cluster points.csv -a kmeans -c 3 -o out.json # Cluster, write JSON
    python cli.py cluster points.json -a hierarchical --linkage max
    python cli.py range-search points.json --locus 15,20 --radius 3
"""

import sys
import json
import argparse
from typing import List, Optional, Sequence

import numpy as np

from gridcluster.config.settings_loader import ConfigManager, Settings
from gridcluster.core.clustering_engine import ClusteringEngine
from gridcluster.core.vector import Vector
from gridcluster.schemas.data_models import ClusterAlgorithm, ClusteringOutput, LinkagePolicy
from gridcluster.storage.point_io import load_points, save_model, save_points
from gridcluster.utils.advanced_logging import configure_logging, get_logger, log_exceptions
from gridcluster.utils.error_handling import ConfigurationError, GridClusterError
from gridcluster.utils.sampling import DEFAULT_BOXES, sample_boxes


logger = get_logger("gridcluster.cli")


class ClusteringCLI:
    """CLI for gridcluster."""

    def __init__(self, settings: Settings):
        """
        Initialize CLI.

        Args:
            settings: Loaded settings
        """
        self.settings = settings
        self.engine = ClusteringEngine(settings)

    def generate(
        self,
        output: str,
        n: int,
        seed: Optional[int] = None,
        boxes: Optional[list] = None,
    ) -> List[Vector]:
        """Sample n points from boxes (the three default boxes if None) and save them."""
        rng = np.random.default_rng(seed)
        points = sample_boxes(boxes or DEFAULT_BOXES, n, rng)
        save_points(points, output)
        return points

    def cluster(
        self,
        input_path: str,
        algorithm: str,
        params: dict,
        fields: Optional[Sequence[str]] = None,
        use_spatial_index: Optional[bool] = None,
    ) -> ClusteringOutput:
        """Load points, run one algorithm and return the output document."""
        with log_exceptions(logger, operation="load_points"):
            points = load_points(input_path, fields)
        result = self.engine.cluster(points, algorithm, params, use_spatial_index)
        return self.engine.to_output(result, algorithm)

    def range_search(
        self,
        input_path: str,
        locus: Sequence[float],
        radius: float,
        fields: Optional[Sequence[str]] = None,
        use_spatial_index: Optional[bool] = None,
    ) -> List[Vector]:
        """Points strictly within radius of locus."""
        points = load_points(input_path, fields)
        point_set = self.engine.build_point_set(points, use_spatial_index)
        return point_set.get_points(point_set.range_search(Vector.from_array(locus), radius))


def print_json(data: dict, indent: int = 2, file=None):
    """Pretty print JSON."""
    print(json.dumps(data, indent=indent, default=str), file=file or sys.stdout)


def print_summary(output: ClusteringOutput):
    """Print a short human-readable run summary to stderr."""
    summary = output.summary
    print(f"✅ {summary.algorithm}: {summary.clusters} clusters from {summary.total_points} points", file=sys.stderr)
    if summary.noise_points:
        print(f"   Noise: {summary.noise_points}", file=sys.stderr)
    for name, value in summary.quality_metrics.items():
        print(f"   {name}: {value:.4f}", file=sys.stderr)
    print(f"   Time: {summary.processing_time_ms:.1f}ms", file=sys.stderr)


def parse_locus(text: str) -> List[float]:
    try:
        return [float(value) for value in text.split(",")]
    except ValueError as e:
        raise ConfigurationError(f"Invalid locus '{text}': expected comma-separated numbers") from e


def build_params(args: argparse.Namespace) -> dict:
    """Algorithm parameters given on the command line (unset flags fall back to settings)."""
    candidates = {
        "hierarchical": {"linkage": args.linkage},
        "dbscan": {"radius": args.radius, "min_points": args.min_points},
        "kmeans": {
            "cluster_count": args.cluster_count,
            "seed": args.seed,
            "max_iterations": args.max_iterations,
        },
    }.get(args.algorithm, {})
    return {key: value for key, value in candidates.items() if value is not None}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="gridcluster CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "command",
        help="Command to execute",
        choices=["generate", "cluster", "range-search"],
    )

    parser.add_argument("path", help="Output file (generate) or input point file (cluster, range-search)")
    parser.add_argument("--config", help="Settings YAML file")
    parser.add_argument("--log-level", help="Override the configured log level")
    parser.add_argument("--output", "-o", help="Write the clustering output JSON here instead of stdout")
    parser.add_argument("--fields", help="Comma-separated record keys / CSV columns to use as coordinates")
    parser.add_argument("--no-index", action="store_true", help="Use the naive point set instead of the grid index")
    parser.add_argument(
        "--algorithm", "-a",
        choices=[algorithm.value for algorithm in ClusterAlgorithm],
        help="Algorithm (default from settings)",
    )
    parser.add_argument("--linkage", choices=[policy.value for policy in LinkagePolicy], help="Linkage (hierarchical)")
    parser.add_argument("--radius", "-r", type=float, help="Neighborhood radius (dbscan, range-search)")
    parser.add_argument("--min-points", type=int, help="Min points (dbscan)")
    parser.add_argument("--cluster-count", "-c", type=int, help="Number of clusters (kmeans)")
    parser.add_argument("--max-iterations", type=int, help="Iteration cap (kmeans)")
    parser.add_argument("--seed", type=int, help="Random seed (generate, kmeans)")
    parser.add_argument("-n", type=int, default=1000, help="Number of points (generate)")
    parser.add_argument("--boxes", help="JSON list of boxes, each a list of [lo, hi] pairs (generate)")
    parser.add_argument("--locus", help="Comma-separated search center (range-search)")
    return parser


def main(argv: Optional[Sequence[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ConfigManager.reload_config(args.config) if args.config else ConfigManager.get_settings()
    except GridClusterError as e:
        print_json(e.to_dict(), file=sys.stderr)
        sys.exit(1)

    configure_logging(
        log_level=args.log_level or settings.logging.level,
        log_format=settings.logging.format,
        log_file=settings.logging.file,
        service_name=settings.service.name,
    )

    cli = ClusteringCLI(settings)
    fields = args.fields.split(",") if args.fields else None
    use_spatial_index = False if args.no_index else None

    try:
        if args.command == "generate":
            boxes = json.loads(args.boxes) if args.boxes else None
            points = cli.generate(args.path, args.n, seed=args.seed, boxes=boxes)
            print(f"✅ Wrote {len(points)} points to {args.path}", file=sys.stderr)

        elif args.command == "cluster":
            args.algorithm = args.algorithm or settings.clustering.default_algorithm.value
            output = cli.cluster(
                args.path,
                args.algorithm,
                build_params(args),
                fields=fields,
                use_spatial_index=use_spatial_index,
            )
            if args.output:
                save_model(output, args.output)
            else:
                print(output.model_dump_json(indent=2))
            print_summary(output)

        elif args.command == "range-search":
            if not args.locus or args.radius is None:
                print("❌ --locus and --radius are required", file=sys.stderr)
                sys.exit(1)

            found = cli.range_search(
                args.path,
                parse_locus(args.locus),
                args.radius,
                fields=fields,
                use_spatial_index=use_spatial_index,
            )
            print_json({"count": len(found), "points": [point.to_list() for point in found]})

    except GridClusterError as e:
        print_json(e.to_dict(), file=sys.stderr)
        sys.exit(1)
    except (OSError, ValueError) as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
