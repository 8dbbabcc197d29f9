#!/usr/bin/env python3
import argparse
from pathlib import Path

from treemeshgen.config import load_configuration, run_configuration_from_dict
from treemeshgen.export import SUPPORTED_FILE_FORMATS, save_tree_mesh
from treemeshgen.generate import generate_tree
from treemeshgen.presets.trees import PRESET_NAMES
from treemeshgen.progress_logging import log_progress
from treemeshgen.visualize import save_skeleton_plot_png


def parse_arguments(argv=None) -> argparse.Namespace:
    argument_parser = argparse.ArgumentParser(
        description="Procedural tree mesh generator"
    )
    argument_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config YAML file",
    )
    argument_parser.add_argument(
        "--preset",
        choices=PRESET_NAMES,
        default=None,
        help="Named preset used as the base configuration",
    )
    argument_parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed override (0 = non-reproducible)",
    )
    argument_parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for the generated files",
    )
    argument_parser.add_argument(
        "--format",
        choices=SUPPORTED_FILE_FORMATS,
        default=None,
        help="Mesh file format",
    )
    argument_parser.add_argument(
        "--plot",
        action="store_true",
        help="Also save a skeleton plot PNG",
    )
    argument_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Disable progress prints",
    )
    return argument_parser.parse_args(argv)


def build_run_configuration(arguments: argparse.Namespace):
    configuration = {}
    if arguments.config is not None:
        if not arguments.config.exists():
            raise ValueError(f"Config file not found: {arguments.config}")
        configuration = load_configuration(arguments.config)
    if arguments.preset is not None:
        configuration["preset"] = arguments.preset

    run_configuration = run_configuration_from_dict(configuration)

    if arguments.seed is not None:
        run_configuration.growth = run_configuration.growth.with_overrides(random_seed=arguments.seed)
    if arguments.output_dir is not None:
        run_configuration.output_directory = arguments.output_dir
    if arguments.format is not None:
        run_configuration.file_format = arguments.format
    if arguments.plot:
        run_configuration.save_skeleton_plot = True
    if arguments.quiet:
        run_configuration.enable_progress_prints = False
    return run_configuration


def run(arguments: argparse.Namespace) -> Path:
    run_configuration = build_run_configuration(arguments)
    enable_progress_prints = run_configuration.enable_progress_prints

    result = generate_tree(run_configuration.growth, enable_progress_prints=enable_progress_prints)

    output_directory = run_configuration.output_directory
    output_directory.mkdir(parents=True, exist_ok=True)
    mesh_path = output_directory / f"tree.{run_configuration.file_format}"
    log_progress(enable_progress_prints, f"Saving mesh: {mesh_path}")
    save_tree_mesh(result, mesh_path, run_configuration.file_format)

    if run_configuration.save_skeleton_plot:
        plot_path = output_directory / "tree_skeleton.png"
        log_progress(enable_progress_prints, f"Saving skeleton plot: {plot_path}")
        save_skeleton_plot_png(result.forest, plot_path)

    log_progress(enable_progress_prints, "Done")
    return mesh_path


def main(argv=None) -> None:
    arguments = parse_arguments(argv)
    run(arguments)


if __name__ == "__main__":
    main()
