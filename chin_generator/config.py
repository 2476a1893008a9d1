"""
Configuration management for the Balls-Chin Generator.

This module handles loading and validation of configuration parameters
from a YAML config file and an optional settings.txt file.
"""

import re
import math
from pathlib import Path
from typing import Dict, Any, Optional, Tuple
import yaml
import configparser
from dataclasses import dataclass


RENDERERS = ("asset", "procedural")
SAMPLER_VARIANTS = ("filtered", "plain")


def parse_slider_value(value_str: str) -> float:
    """
    Parse a slider value the way the UI sliders hand them over.

    Supported formats:
    - Plain numbers: "0.5", "1", "-0.1"
    - Percentages: "50%", "-10%"

    No range checking is done; out-of-range values are simply clipped by
    the canvas when drawn.

    Args:
        value_str: Slider value as text

    Returns:
        Slider value as float
    """
    value_str = str(value_str).strip()

    try:
        value = float(value_str)
    except ValueError:
        pass
    else:
        if not math.isfinite(value):
            raise ValueError(f"Slider value must be finite, got '{value_str}'")
        return value

    percent_match = re.fullmatch(r'([-+]?\d+(?:\.\d+)?)\s*%', value_str)
    if percent_match and math.isfinite(float(percent_match.group(1))):
        return float(percent_match.group(1)) / 100.0

    raise ValueError(
        f"Could not parse slider value '{value_str}'. "
        f"Supported formats: '0.5' (number), '50%' (percentage)"
    )


@dataclass
class Config:
    """Configuration class for the Balls-Chin Generator."""

    # Input files
    input_image: Optional[Path] = None
    mask_asset: Optional[Path] = Path("mask_fg_chin.png")
    outline_asset: Optional[Path] = Path("outline_fg_chin.png")

    # Output
    output_dir: Path = Path("output")
    debug_dir: Path = Path("debug")
    output_filename: str = "balls-chin.png"

    # Slider defaults
    intensity: float = 0.5
    width_factor: float = 1.0
    vertical_offset: float = 0.0

    # Rendering
    renderer: str = "asset"
    outline_color: Tuple[int, int, int] = (0, 0, 0)
    stroke_width: int = 3
    face_aligned: bool = True
    # Size of the built-in assets drawn when no asset files are available
    procedural_asset_size: Tuple[int, int] = (400, 240)

    # Skin tone sampling (magic constants kept as defaults)
    sampler_variant: str = "filtered"
    sample_stride: int = 10
    brightness_min: float = 40.0
    brightness_max: float = 230.0
    brightening_offset: Optional[int] = None  # None = variant default
    default_skin_color: Tuple[int, int, int] = (220, 160, 140)

    # Face detector settings
    use_detector: bool = True
    max_num_faces: int = 1
    refine_landmarks: bool = False
    min_detection_confidence: float = 0.6
    min_tracking_confidence: float = 0.6
    detector_timeout: Optional[float] = 10.0  # seconds, None = wait forever
    left_eye_index: int = 33
    right_eye_index: int = 263

    def __post_init__(self):
        """Post-initialization validation and path conversion."""
        # Convert string paths to Path objects
        if isinstance(self.input_image, str):
            self.input_image = Path(self.input_image)
        if isinstance(self.mask_asset, str):
            self.mask_asset = Path(self.mask_asset)
        if isinstance(self.outline_asset, str):
            self.outline_asset = Path(self.outline_asset)
        if isinstance(self.output_dir, str):
            self.output_dir = Path(self.output_dir)
        if isinstance(self.debug_dir, str):
            self.debug_dir = Path(self.debug_dir)

        # YAML hands back lists
        self.outline_color = tuple(self.outline_color)
        self.default_skin_color = tuple(self.default_skin_color)
        self.procedural_asset_size = tuple(self.procedural_asset_size)

        self.validate()

    def validate(self):
        """Validate configuration parameters."""
        if self.renderer not in RENDERERS:
            raise ValueError(
                f"Unsupported renderer '{self.renderer}'. Choose one of {RENDERERS}"
            )
        if self.sampler_variant not in SAMPLER_VARIANTS:
            raise ValueError(
                f"Unsupported sampler variant '{self.sampler_variant}'. "
                f"Choose one of {SAMPLER_VARIANTS}"
            )
        if self.sample_stride <= 0:
            raise ValueError("Sample stride must be positive")
        if self.brightness_min >= self.brightness_max:
            raise ValueError(
                f"Brightness window ({self.brightness_min}, {self.brightness_max}) is empty"
            )
        if len(self.default_skin_color) != 3 or len(self.outline_color) != 3:
            raise ValueError("Colors must be RGB triples")
        if self.detector_timeout is not None and self.detector_timeout <= 0:
            raise ValueError("Detector timeout must be positive (or null for no timeout)")

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for serialization."""
        return {
            "input_image": str(self.input_image) if self.input_image else None,
            "mask_asset": str(self.mask_asset) if self.mask_asset else None,
            "outline_asset": str(self.outline_asset) if self.outline_asset else None,
            "output_dir": str(self.output_dir),
            "debug_dir": str(self.debug_dir),
            "output_filename": self.output_filename,
            "intensity": self.intensity,
            "width_factor": self.width_factor,
            "vertical_offset": self.vertical_offset,
            "renderer": self.renderer,
            "outline_color": list(self.outline_color),
            "stroke_width": self.stroke_width,
            "face_aligned": self.face_aligned,
            "procedural_asset_size": list(self.procedural_asset_size),
            "sampler_variant": self.sampler_variant,
            "sample_stride": self.sample_stride,
            "brightness_min": self.brightness_min,
            "brightness_max": self.brightness_max,
            "brightening_offset": self.brightening_offset,
            "default_skin_color": list(self.default_skin_color),
            "use_detector": self.use_detector,
            "max_num_faces": self.max_num_faces,
            "refine_landmarks": self.refine_landmarks,
            "min_detection_confidence": self.min_detection_confidence,
            "min_tracking_confidence": self.min_tracking_confidence,
            "detector_timeout": self.detector_timeout,
            "left_eye_index": self.left_eye_index,
            "right_eye_index": self.right_eye_index,
        }


def load_config(config_path: str, settings_path: str = "settings.txt") -> Config:
    """Load configuration from YAML file and settings.txt file."""
    config_file = Path(config_path)

    # First try to load from settings.txt
    if Path(settings_path).exists():
        print(f"Loading configuration from {settings_path}")
        return load_config_from_settings(settings_path, config_path)

    # Fall back to YAML config
    if not config_file.exists():
        default_config = Config()
        save_config(default_config, config_path)
        print(f"Created default configuration file: {config_path}")
        print("Edit it to point at your mask/outline assets, or pass --input to run.")
        return default_config

    with open(config_file, 'r') as f:
        config_dict = yaml.safe_load(f) or {}

    return Config(**config_dict)


def load_config_from_settings(settings_path: str, config_path: str) -> Config:
    """Load configuration from a settings.txt (INI) file."""
    settings = configparser.ConfigParser(interpolation=None)
    settings.read(settings_path)

    config_dict = {}

    if 'IMAGES' in settings:
        images_section = settings['IMAGES']
        if 'input_image' in images_section:
            config_dict['input_image'] = images_section['input_image']

    if 'ASSETS' in settings:
        assets_section = settings['ASSETS']
        if 'mask_asset' in assets_section:
            config_dict['mask_asset'] = assets_section['mask_asset']
        if 'outline_asset' in assets_section:
            config_dict['outline_asset'] = assets_section['outline_asset']
        if 'renderer' in assets_section:
            config_dict['renderer'] = assets_section['renderer'].strip()

    # Slider values (with number/percentage parsing)
    if 'SLIDERS' in settings:
        slider_section = settings['SLIDERS']
        for key in ('intensity', 'width_factor', 'vertical_offset'):
            if key in slider_section:
                config_dict[key] = parse_slider_value(slider_section[key])
                print(f"Parsed {key}: {slider_section[key]} → {config_dict[key]:.2f}")

    if 'OUTPUT' in settings:
        output_section = settings['OUTPUT']
        if 'output_directory' in output_section:
            config_dict['output_dir'] = output_section['output_directory']
        if 'debug_directory' in output_section:
            config_dict['debug_dir'] = output_section['debug_directory']
        if 'output_filename' in output_section:
            config_dict['output_filename'] = output_section['output_filename']

    # settings.txt takes precedence over YAML, YAML over defaults
    yaml_config_file = Path(config_path)
    if yaml_config_file.exists():
        with open(yaml_config_file, 'r') as f:
            yaml_dict = yaml.safe_load(f) or {}
        for key, value in yaml_dict.items():
            if key not in config_dict:
                config_dict[key] = value

    return Config(**config_dict)


def save_config(config: Config, config_path: str):
    """Save configuration to YAML file."""
    config_dict = config.to_dict()

    with open(config_path, 'w') as f:
        yaml.dump(config_dict, f, default_flow_style=False, indent=2)


def create_example_config() -> str:
    """Create an example configuration file."""
    example_config = """# Balls-Chin Generator Configuration
# Edit these paths to match your files

# Input photo (can also be passed with --input)
input_image: "path/to/photo.jpg"

# Chin artwork (mask = white shape, outline = black line art)
mask_asset: "mask_fg_chin.png"
outline_asset: "outline_fg_chin.png"

# Output settings
output_dir: "output"
debug_dir: "debug"
output_filename: "balls-chin.png"

# Slider defaults
intensity: 0.5        # Chin size, 0..1
width_factor: 1.0     # Extra horizontal stretch
vertical_offset: 0.0  # Shift down (+) or up (-), relative to face/image height

# Rendering
renderer: "asset"          # "asset" (mask/outline PNGs) or "procedural" (ellipses)
outline_color: [0, 0, 0]
stroke_width: 3
face_aligned: true         # Rotate the chin along the eye line

# Skin tone sampling
sampler_variant: "filtered"   # "filtered" (top 40%, brightness filter, +15) or "plain" (+10)
sample_stride: 10
brightness_min: 40
brightness_max: 230
brightening_offset: null      # null = variant default
default_skin_color: [220, 160, 140]

# Face detector (MediaPipe Face Mesh)
use_detector: true
min_detection_confidence: 0.6
min_tracking_confidence: 0.6
detector_timeout: 10.0        # seconds, null = wait forever
"""

    return example_config


if __name__ == "__main__":
    # Generate example config when run directly
    example = create_example_config()
    with open("config_example.yaml", "w") as f:
        f.write(example)
    print("Example configuration saved to config_example.yaml")
