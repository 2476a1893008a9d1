#!/usr/bin/env python3
"""
Balls-Chin Generator - Main Application

Puts a cartoon "balls chin" on a photo:
- Finds the face with MediaPipe Face Mesh (or falls back to a fixed position)
- Sizes and places the chin from the face bounding box and the slider values
- Samples the skin tone under the chin and tints the artwork to match
- Saves the result as a PNG
"""

import sys
import asyncio
import argparse
import logging
import json
from datetime import datetime
from pathlib import Path
from typing import Optional

import cv2

# Import our modules
from chin_generator.config import Config, load_config, parse_slider_value
from chin_generator.image_io import save_png
from chin_generator.landmarks import FaceMeshDetector
from chin_generator.placement import PlacementParams
from chin_generator.renderers import ChinAssets, create_renderer
from chin_generator.session import ChinSession, GenerateResult

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler('balls_chin.log')
    ]
)
logger = logging.getLogger(__name__)


class BallsChinGenerator:
    """Main application class for the Balls-Chin Generator."""

    def __init__(self, config: Config):
        """Initialize the generator with configuration."""
        self.config = config
        self.setup_directories()

        # Initialize components
        self.detector = FaceMeshDetector(self.config) if self.config.use_detector else None
        self.renderer = create_renderer(self.config)
        self.session = ChinSession(self.config, self.renderer, self.detector)

        logger.info("Balls-Chin Generator initialized")

    def setup_directories(self):
        """Create output directories if they don't exist."""
        for dir_path in (self.config.output_dir, self.config.debug_dir):
            dir_path.mkdir(parents=True, exist_ok=True)

        logger.info(f"Output directory: {self.config.output_dir}")

    def validate_inputs(self) -> bool:
        """Validate that the input photo exists and report the assets in use."""
        if not self.config.input_image:
            logger.error("No input image specified (use --input or set input_image)")
            return False

        if not self.config.input_image.exists():
            logger.error(f"Input image not found: {self.config.input_image}")
            return False

        if self.config.renderer == "asset":
            for asset in (self.config.mask_asset, self.config.outline_asset):
                if asset and not asset.exists():
                    logger.warning(f"Chin asset not found: {asset}")
                    logger.warning("Built-in artwork will be used instead")

        if self.detector is not None and not self.detector.available:
            logger.warning("Face detector unavailable, the chin will use the fallback position")

        logger.info(f"Input image: {self.config.input_image}")
        logger.info(f"Renderer: {self.config.renderer}, sampler: {self.config.sampler_variant}")
        return True

    def run(self, params: PlacementParams) -> Optional[Path]:
        """Load the photo, draw the chin and save the result."""
        logger.info("Starting Balls-Chin Generator")

        try:
            self.session.load_image(self.config.input_image)
            result = asyncio.run(self.session.generate(params))
            if result is None:
                raise RuntimeError("Generate did not run")

            filename, png_bytes = self.session.download()
            output_path = self.config.output_dir / filename
            output_path.write_bytes(png_bytes)

            logger.info(f"Saved {output_path}")
            return output_path

        except Exception as e:
            logger.error(f"Generation failed: {str(e)}")
            raise
        finally:
            if self.detector is not None:
                self.detector.close()

    def save_debug_overlay(self, result: GenerateResult):
        """Save the canvas with the face box, chin rectangle and sample area drawn on it."""
        overlay = self.session.canvas.copy()

        if result.face_box is not None:
            box = result.face_box
            cv2.rectangle(overlay, (int(box.min_x), int(box.min_y)),
                          (int(box.max_x), int(box.max_y)), (0, 128, 255, 255), 2)

        rect = result.rect
        cv2.rectangle(overlay, (int(rect.x), int(rect.y)),
                      (int(rect.x + rect.width), int(rect.y + rect.height)), (0, 255, 0, 255), 2)

        if result.sample_rect is not None:
            sample = result.sample_rect
            cv2.rectangle(overlay, (int(sample.x), int(sample.y)),
                          (int(sample.x + sample.width), int(sample.y + sample.height)),
                          (255, 0, 0, 255), 1)

        save_png(overlay, self.config.debug_dir / "placement_overlay.png")

    def generate_debug_report(self, params: PlacementParams):
        """Generate debug report with the placement decisions of the last run."""
        result = self.session.last_result
        if result is None:
            return

        self.save_debug_overlay(result)

        debug_report = {
            "config": self.config.to_dict(),
            "timestamp": datetime.now().isoformat(),
            "input_image": str(self.config.input_image),
            "sliders": {
                "intensity": params.intensity,
                "width_factor": params.width_factor,
                "vertical_offset": params.vertical_offset,
            },
            "placement": {
                "path": result.path,
                "x": result.rect.x,
                "y": result.rect.y,
                "width": result.rect.width,
                "height": result.rect.height,
                "angle": result.angle,
            },
            "color": list(result.color),
        }

        debug_file = self.config.debug_dir / "processing_report.json"
        with open(debug_file, 'w') as f:
            json.dump(debug_report, f, indent=2)

        logger.info(f"Debug report saved: {debug_file}")


def build_config(args: argparse.Namespace) -> Config:
    """Load the config file and apply command-line overrides."""
    config = load_config(args.config)
    overrides = config.to_dict()

    if args.input:
        overrides["input_image"] = args.input
    if args.intensity is not None:
        overrides["intensity"] = parse_slider_value(args.intensity)
    if args.width_factor is not None:
        overrides["width_factor"] = parse_slider_value(args.width_factor)
    if args.offset is not None:
        overrides["vertical_offset"] = parse_slider_value(args.offset)
    if args.renderer:
        overrides["renderer"] = args.renderer
    if args.sampler:
        overrides["sampler_variant"] = args.sampler
    if args.no_detector:
        overrides["use_detector"] = False

    return Config(**overrides)


def main():
    """Main entry point for the Balls-Chin Generator."""
    parser = argparse.ArgumentParser(
        description="Balls-Chin Generator - Put a cartoon chin on a photo"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )
    parser.add_argument("--input", type=str, help="Photo to process")
    parser.add_argument("--intensity", type=str, help="Chin size, e.g. 0.5 or 50%%")
    parser.add_argument("--width-factor", type=str, help="Horizontal stretch, e.g. 1.2")
    parser.add_argument("--offset", type=str, help="Vertical offset, e.g. 0.05 or -5%%")
    parser.add_argument("--renderer", choices=["asset", "procedural"], help="Chin artwork style")
    parser.add_argument("--sampler", choices=["filtered", "plain"], help="Skin tone sampler")
    parser.add_argument(
        "--no-detector",
        action="store_true",
        help="Skip face detection and use the fallback position"
    )
    parser.add_argument(
        "--export-assets",
        type=str,
        metavar="DIR",
        help="Write the built-in mask/outline artwork to DIR and exit"
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Only validate inputs without processing"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging and write a placement overlay and report"
    )

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = build_config(args)

        if args.export_assets:
            width, height = config.procedural_asset_size
            assets = ChinAssets.from_procedural(width, height, config.stroke_width)
            mask_path, outline_path = assets.save(Path(args.export_assets))
            logger.info(f"Built-in artwork written to {mask_path} and {outline_path}")
            return

        generator = BallsChinGenerator(config)

        # Validate inputs
        if not generator.validate_inputs():
            sys.exit(1)

        if args.validate_only:
            logger.info("Input validation completed successfully")
            return

        params = PlacementParams(config.intensity, config.width_factor, config.vertical_offset)
        generator.run(params)

        if args.debug:
            generator.generate_debug_report(params)

    except KeyboardInterrupt:
        logger.info("Processing interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
