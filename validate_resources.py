#!/usr/bin/env python3
"""
Settings validation script for the Balls-Chin Generator.

This script helps validate your settings.txt file and checks that all
specified files exist and all slider values parse.
"""

import configparser
from pathlib import Path
import sys

from chin_generator.config import parse_slider_value, RENDERERS


def validate_settings(settings_path: str = "settings.txt") -> bool:
    """Validate all entries of a settings.txt file."""

    settings_file = Path(settings_path)

    if not settings_file.exists():
        print(f"❌ {settings_path} file not found!")
        print("📝 Please create a settings.txt file with your photo and asset paths.")
        print("💡 Run: python validate_resources.py --example")
        return False

    print(f"🔍 Validating {settings_path}...")
    print("=" * 50)

    try:
        settings = configparser.ConfigParser(interpolation=None)
        settings.read(settings_file)

        all_valid = True

        # Input photo
        if 'IMAGES' in settings:
            print("\n🖼️  IMAGES:")
            images_section = settings['IMAGES']

            if 'input_image' in images_section:
                path = Path(images_section['input_image'])
                if path.exists():
                    print(f"  ✅ Input image: {path}")
                else:
                    print(f"  ❌ Input image NOT FOUND: {path}")
                    all_valid = False
            else:
                print("  ℹ️  No input_image specified (pass --input on the command line)")
        else:
            print("  ℹ️  No [IMAGES] section (pass --input on the command line)")

        # Chin artwork (optional, built-in artwork is used when missing)
        if 'ASSETS' in settings:
            print("\n🎨 CHIN ASSETS:")
            assets_section = settings['ASSETS']

            for key, description in (('mask_asset', 'Mask'), ('outline_asset', 'Outline')):
                if key in assets_section:
                    path = Path(assets_section[key])
                    if path.exists():
                        print(f"  ✅ {description}: {path}")
                    else:
                        print(f"  ⚠️  {description} NOT FOUND (built-in artwork will be used): {path}")

            if 'renderer' in assets_section:
                renderer = assets_section['renderer'].strip()
                if renderer in RENDERERS:
                    print(f"  ✅ Renderer: {renderer}")
                else:
                    print(f"  ❌ Unknown renderer '{renderer}' (choose from {', '.join(RENDERERS)})")
                    all_valid = False

        # Slider values
        if 'SLIDERS' in settings:
            print("\n🎚️  SLIDERS:")
            slider_section = settings['SLIDERS']

            for key in ('intensity', 'width_factor', 'vertical_offset'):
                if key in slider_section:
                    value_str = slider_section[key]
                    try:
                        value = parse_slider_value(value_str)
                        print(f"  ✅ {key}: {value_str} → {value:.2f}")
                    except ValueError:
                        print(f"  ❌ Invalid {key} value: {value_str}")
                        all_valid = False

        # Output settings
        if 'OUTPUT' in settings:
            print("\n📤 OUTPUT SETTINGS:")
            output_section = settings['OUTPUT']

            if 'output_directory' in output_section:
                path = Path(output_section['output_directory'])
                path.mkdir(parents=True, exist_ok=True)  # Create if needed
                print(f"  ✅ Output directory: {path}")

            if 'debug_directory' in output_section:
                path = Path(output_section['debug_directory'])
                path.mkdir(parents=True, exist_ok=True)  # Create if needed
                print(f"  ✅ Debug directory: {path}")

            if 'output_filename' in output_section:
                print(f"  ✅ Output filename: {output_section['output_filename']}")

        print("\n" + "=" * 50)

        if all_valid:
            print("🎉 All settings validated successfully!")
            print("💡 Run: python main.py")
            return True
        else:
            print("❌ Some settings are invalid!")
            print("📋 Please check the values in your settings.txt file.")
            return False

    except configparser.Error as e:
        print(f"❌ Error reading {settings_path}: {e}")
        return False


def print_example_settings():
    """Print an example settings.txt file"""
    print("\n📝 Example settings.txt file:")
    print("=" * 50)

    example = """[IMAGES]
# Your photo can be anywhere with any name
input_image = photos/me.jpg

[ASSETS]
# Mask is the white chin shape, outline is the black line art
mask_asset = assets/mask_fg_chin.png
outline_asset = assets/outline_fg_chin.png
renderer = asset

[SLIDERS]
# Plain numbers or percentages
intensity = 50%
width_factor = 1.1
vertical_offset = -0.02

[OUTPUT]
output_directory = output
debug_directory = debug
output_filename = balls-chin.png"""

    print(example)
    print("=" * 50)


if __name__ == "__main__":
    print("🧔 Balls-Chin Generator - Settings Validator")
    print("=" * 50)

    if len(sys.argv) > 1 and sys.argv[1] == "--example":
        print_example_settings()
        sys.exit(0)

    success = validate_settings()

    if not success:
        print("\n💡 Need help? Run: python validate_resources.py --example")
        sys.exit(1)
    else:
        sys.exit(0)
