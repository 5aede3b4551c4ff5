#!/usr/bin/env python3
"""
Configuration Management Utility for the DeepRead transcript service.

This script helps operators:
1. Validate their current configuration
2. Generate a template .env file
3. Print the effective configuration
4. See which caption relays are usable
"""

import sys
import argparse
from pathlib import Path

# Add the src directory to the path so we can import our modules
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / 'src'))

from deepread.core.config import (
    config, validate_config, create_env_template, print_config_summary
)
from deepread.core.relays import build_relays


def validate_current_config():
    """Validate the current configuration and print results."""
    print("🔍 Validating Current Configuration...")
    print("=" * 50)

    is_valid, problems = validate_config()

    if is_valid:
        print("✅ Configuration is valid!")
    else:
        print(f"❌ Configuration has {len(problems)} problem(s):")
        for problem in problems:
            print(f"  - {problem}")
        print("\nFix these in your .env file or environment.")

    print("\n" + "=" * 50)
    return is_valid


def generate_env_template():
    """Write a template .env file."""
    print("📝 Generating Environment Template...")
    print("=" * 50)

    template_path = Path('.env.template')
    template_path.write_text(create_env_template())
    print(f"✅ Template created: {template_path.absolute()}")
    print("Copy this file to .env and adjust the settings.")

    print("\n" + "=" * 50)


def show_config_summary():
    """Show a summary of the current configuration."""
    print("📊 Current Configuration Summary")
    print("=" * 50)
    print_config_summary()


def check_relays():
    """Report which caption relays would be tried and which are configured."""
    print("🛰️  Caption Relay Status")
    print("=" * 50)

    if 'proxy' not in config.fetch.strategies:
        print("⚠️  The proxy strategy is not in FETCH_STRATEGIES; relays are never tried.")

    status = {
        'supadata': bool(config.relays.supadata_api_key),
        'subtitle_api': bool(config.relays.subtitle_api_url),
    }
    for relay in build_relays(config.relays):
        usable = status.get(relay.name, True)
        print(f"{relay.name:30} {'✅ Configured' if usable else '❌ Not configured'}")
    if not config.relays.cors_relays:
        print(f"{'cors':30} ❌ No CAPTION_RELAY_URLS set")

    print("\n" + "=" * 50)


def main():
    """Main function to handle command line arguments."""
    parser = argparse.ArgumentParser(
        description="Configuration Management Utility for the DeepRead transcript service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/config_manager.py --validate          # Validate current config
  python scripts/config_manager.py --template          # Generate .env template
  python scripts/config_manager.py --summary           # Show config summary
  python scripts/config_manager.py --relays            # Show relay status
  python scripts/config_manager.py --all               # Run all checks
        """
    )

    parser.add_argument('--validate', action='store_true',
                        help='Validate current configuration')
    parser.add_argument('--template', action='store_true',
                        help='Generate .env template file')
    parser.add_argument('--summary', action='store_true',
                        help='Show configuration summary')
    parser.add_argument('--relays', action='store_true',
                        help='Show caption relay status')
    parser.add_argument('--all', action='store_true',
                        help='Run all checks and show complete status')

    args = parser.parse_args()

    if not any(vars(args).values()):
        parser.print_help()
        return

    print("🚀 DeepRead - Configuration Manager")
    print("=" * 60)
    print()

    is_valid = True
    try:
        if args.template:
            generate_env_template()

        if args.validate or args.all:
            is_valid = validate_current_config()

        if args.summary or args.all:
            show_config_summary()

        if args.relays or args.all:
            check_relays()

    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.")
    except (OSError, ValueError) as e:
        print(f"\n❌ Error: {e}")
        sys.exit(1)

    if not is_valid:
        sys.exit(1)


if __name__ == "__main__":
    main()
