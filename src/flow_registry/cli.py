"""
Command-line entry point for registry validation in CI.

Writes the validation result JSON for the pull-request comment step and exits
0 when the entry is valid, 1 otherwise.
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from flow_registry.core import (
    ConfigValidationError,
    TelemetryLevel,
    TelemetryRecorder,
    ValidatorConfig,
    get_recorder,
    load_config,
    set_recorder,
    validate_config,
)
from flow_registry.directories import GitHubDirectory
from flow_registry.validator import RegistryValidator, ValidationResult

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flow-registry-validate",
        description="Validate the newest entry of the Flow team registry.",
    )
    parser.add_argument("--registry", help="Registry YAML file (default: registry.yaml)")
    parser.add_argument("--output", help="Result JSON path (default: tmp/validation-result.json)")
    parser.add_argument("--config", help="Validator config YAML (default: config/validator.yml)")
    parser.add_argument("--base", help="Registry file at the base revision; requires exactly one added entry")
    parser.add_argument("--api-url", help="GitHub API base URL")
    parser.add_argument("--require-wallets", action="store_true",
                        help="Require wallets.evm and wallets.flow")
    parser.add_argument("--skip-ecosystem", action="store_true",
                        help="Do not require Flow markers in repositories")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def resolve_config(args: argparse.Namespace) -> ValidatorConfig:
    """
    Build the run configuration: file, then environment, then flags.

    Raises:
        ConfigValidationError: If the result is invalid or no token is available
    """
    config = load_config(args.config).apply_env()

    if args.registry:
        config.registry_path = args.registry
    if args.output:
        config.output_path = args.output
    if args.api_url:
        config.api_url = args.api_url
    if args.require_wallets:
        config.require_wallets = True
    if args.skip_ecosystem:
        config.check_ecosystem = False

    validate_config(config)
    if not config.token:
        raise ConfigValidationError("GITHUB_TOKEN environment variable is required")
    return config


async def run(config: ValidatorConfig, base_path: str | None = None) -> ValidationResult:
    """Validate the configured registry file and write the result artifact."""
    async with GitHubDirectory(config) as directory:
        validator = RegistryValidator(
            directory,
            require_wallets=config.require_wallets,
            check_ecosystem=config.check_ecosystem,
        )
        result = await validator.validate_file(config.registry_path, base_path)

    write_result(result, config.output_path)
    logger.debug(f"Lookup stats: {get_recorder().get_stats().to_dict()}")
    return result


def write_result(result: ValidationResult, output_path: str | Path) -> None:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(result.to_json(), encoding="utf-8")


def report(result: ValidationResult) -> None:
    if result.is_valid:
        print("✅ Registry validation passed!")
        return
    print("❌ Registry validation failed:")
    for error in result.errors:
        print(f"  - {error}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    set_recorder(TelemetryRecorder(
        level=TelemetryLevel.DEBUG if args.verbose else TelemetryLevel.INFO,
        collect_stats=True,
    ))

    try:
        config = resolve_config(args)
    except ConfigValidationError as e:
        print(f"Error during validation: {e}", file=sys.stderr)
        return 1

    logger.debug(f"Config: {config.to_dict()}")
    try:
        result = asyncio.run(run(config, args.base))
    except Exception as e:
        logger.exception("Validation run aborted")
        print(f"Error during validation: {e}", file=sys.stderr)
        return 1

    report(result)
    return 0 if result.is_valid else 1


if __name__ == "__main__":
    sys.exit(main())
