"""Command line entry point: ``liveness-detect IMAGE``.

Exit codes: 0 = Live (or acceptable quality with --quality-only),
1 = Spoof (or unacceptable quality), 2 = error.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from .api import create_pipeline, get_version
from .config import load_settings
from .logging_config import configure_logging
from .pipeline.contracts import PipelineConfig
from .pipeline.decode import load_image
from .pipeline.errors import LivenessError


logger = logging.getLogger(__name__)

EXIT_LIVE = 0
EXIT_SPOOF = 1
EXIT_ERROR = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Single-image face liveness detection")
    parser.add_argument("image", help="Path to the image to analyze")
    parser.add_argument("--config", default=None, help="Settings YAML (defaults to the packaged config.yaml)")
    parser.add_argument("--occlusion-model", default=None, help="Override the occlusion ONNX model path")
    parser.add_argument("--liveness-model", default=None, help="Override the liveness ONNX model path")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--skip-quality", action="store_true", help="Skip the image quality check")
    parser.add_argument("--skip-occlusion", action="store_true", help="Skip the occlusion check")
    parser.add_argument("--quality-only", action="store_true", help="Only report image quality")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging("DEBUG" if args.debug else "INFO")

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Invalid configuration: %s", e)
        return EXIT_ERROR

    models = settings.models
    if args.occlusion_model:
        models = replace(models, occlusion_model_path=args.occlusion_model)
    if args.liveness_model:
        models = replace(models, liveness_model_path=args.liveness_model)
    settings = replace(settings, models=models)

    config = PipelineConfig(
        debug_logging=args.debug or settings.pipeline.debug_logging,
        skip_quality_check=args.skip_quality or settings.pipeline.skip_quality_check,
        skip_occlusion_check=args.skip_occlusion or settings.pipeline.skip_occlusion_check,
    )

    try:
        image = load_image(args.image)
        with create_pipeline(config, settings) as pipeline:
            if args.quality_only:
                quality = pipeline.check_image_quality(image)
                print(json.dumps(quality.to_dict(), indent=2) if args.json else str(quality))
                return EXIT_LIVE if quality.acceptable else EXIT_SPOOF

            verdict = pipeline.detect_liveness(image)
    except LivenessError as e:
        logger.error("%s [%s]", e, e.reason_code)
        return EXIT_ERROR

    if args.json:
        print(json.dumps(verdict.to_dict(), indent=2))
    else:
        line = f"{verdict.prediction.value} (confidence {verdict.confidence:.3f}) | {verdict.quality}"
        if verdict.failure_reason:
            line += f" | {verdict.failure_reason}"
        print(line)

    return EXIT_LIVE if verdict.is_live else EXIT_SPOOF


if __name__ == "__main__":
    sys.exit(main())
