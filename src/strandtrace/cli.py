#!/usr/bin/env python3
"""
Command-line entry point for StrandTrace, plus convenience wrappers around
the fingerprinting engine.
"""

import argparse
import json
import logging
import os
import sys
import time
from typing import Any, Dict, List, Optional, Union

from tabulate import tabulate

from .core import VERSION, StrandTraceConfig, StrandTraceFingerprint
from .geometry import MODE_HASH, MODES

__all__ = [
    'StrandTraceCLI',
    'generate_fingerprint',
    'verify_image',
    'load_fingerprint',
    'save_fingerprint',
    'format_report',
    'main',
]

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_AUTHENTIC = 2


def generate_fingerprint(image_path: str, image_id: Union[int, str], mode: Optional[str] = None,
                         config: StrandTraceConfig = None) -> Dict[str, Any]:
    """
    Convenience function to generate a fingerprint

    Args:
        image_path: Path to the image file
        image_id: Identifier that seeds the strand positions
        mode: 'hash' or 'tolerance' (defaults to config.default_mode)
        config: Optional StrandTraceConfig object

    Returns:
        Dictionary containing the fingerprint record

    Example:
        >>> fingerprint = generate_fingerprint('photo.jpg', 12345)
        >>> save_fingerprint(fingerprint, 'photo.fingerprint.json')
    """
    engine = StrandTraceFingerprint(config or StrandTraceConfig())
    return engine.generate_fingerprint(image_path, image_id, mode)


def verify_image(image_path: str, fingerprint: dict, config: StrandTraceConfig = None,
                 orientation: Optional[int] = None) -> Dict[str, Any]:
    """
    Convenience function to verify an image against a fingerprint

    Returns:
        Verification report with per-unit results, 'match_percentage',
        'band' and 'is_authentic'

    Raises:
        MalformedRecordError: the fingerprint lacks required fields
        DimensionMismatchError: the upright image size differs from the record
    """
    engine = StrandTraceFingerprint(config or StrandTraceConfig())
    return engine.verify_image(image_path, fingerprint, orientation)


def load_fingerprint(filepath: str) -> dict:
    with open(filepath, 'r') as f:
        return json.load(f)


def save_fingerprint(fingerprint: dict, filepath: str):
    with open(filepath, 'w') as f:
        json.dump(fingerprint, f, indent=2)
    logger.info(f"Fingerprint saved to {filepath}")


def format_report(report: Dict[str, Any]) -> str:
    """Human-readable summary table of a verification report"""
    if report['mode'] == MODE_HASH:
        rows = [[f"Strand {s['id']}", s['type'], 'MATCH' if s['match'] else 'MISMATCH'] for s in report['strands']]
        rows += [[f"Edge {side}", 'EDGE_BAND', 'MATCH' if ok else 'MISMATCH'] for side, ok in report['edges'].items()]
        table = tabulate(rows, headers=['Unit', 'Type', 'Result'], tablefmt="grid")
        footer = f"{report['matched_checks']}/{report['total_checks']} checks matched"
    else:
        rows = [[f"Strand {s['id']}", s['name'], s['total_pixels'], s['matching_pixels'],
                 s['mismatching_pixels'], f"{s['match_percentage']:.2f}%", 'MATCH' if s['is_match'] else 'MISMATCH']
                for s in report['strand_results']]
        table = tabulate(rows, headers=['Unit', 'Name', 'Total', 'Matching', 'Mismatching', 'Match %', 'Result'],
                         tablefmt="grid")
        footer = f"{report['matching_pixels']}/{report['total_pixels']} pixels within tolerance"
        if not report['dimension_match']:
            footer += "\nDimension mismatch detected - image may be cropped"
    return f"{table}\n\n{footer}\n{report['title']}: {report['match_percentage']}% match"


class StrandTraceCLI:
    """Command-line interface for StrandTrace, with batch support"""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog='strandtrace',
            description='StrandTrace - Strand-sampled image fingerprinting',
            formatter_class=argparse.RawDescriptionHelpFormatter
        )
        parser.add_argument('--version', action='version', version=f'StrandTrace v{VERSION}')

        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        # Generate fingerprint command
        gen_parser = subparsers.add_parser('gen', help='Generate fingerprint for an image or batch')
        gen_parser.add_argument('--image', help='Path to input image (single)')
        gen_parser.add_argument('--batch', help='Path to JSON list of {"image": path, "image_id": id}')
        gen_parser.add_argument('--image-id', help='Identifier that seeds strand positions (single)')
        gen_parser.add_argument('--mode', choices=MODES, help='Fingerprint mode (default from config)')
        gen_parser.add_argument('--captured-by', help='Author recorded in the fingerprint metadata')
        gen_parser.add_argument('--out', required=True, help='Output path for fingerprint JSON or directory for batch')
        gen_parser.add_argument('--config', help='Path to configuration file')
        gen_parser.add_argument('--verbose', action='store_true', help='Enable verbose logging')

        # Verify image command
        verify_parser = subparsers.add_parser('verify', help='Verify image against fingerprint or batch')
        verify_parser.add_argument('--image', help='Path to candidate image (single)')
        verify_parser.add_argument('--batch', help='Path to JSON list of {"image": path, "fingerprint": path}')
        verify_parser.add_argument('--fingerprint', help='Path to fingerprint JSON (single)')
        verify_parser.add_argument('--orientation', type=int, help='EXIF orientation code overriding the file tag')
        verify_parser.add_argument('--out', required=True, help='Output path for verification report or directory for batch')
        verify_parser.add_argument('--config', help='Path to configuration file')
        verify_parser.add_argument('--verbose', action='store_true', help='Enable verbose logging')

        # Config command
        config_parser = subparsers.add_parser('config', help='Generate default configuration file')
        config_parser.add_argument('--out', required=True, help='Output path for configuration file')

        return parser

    def run(self, args: Optional[List[str]] = None) -> int:
        args = self.parser.parse_args(args)

        if not args.command:
            self.parser.print_help()
            return EXIT_ERROR

        if getattr(args, 'verbose', False):
            logging.getLogger().setLevel(logging.DEBUG)

        try:
            if args.command == 'gen':
                return self._generate_fingerprint(args)
            elif args.command == 'verify':
                return self._verify_image(args)
            elif args.command == 'config':
                return self._generate_config(args)
        except Exception as e:
            logger.error(f"Error: {e}")
            return EXIT_ERROR
        return EXIT_ERROR

    def _load_config(self, args) -> StrandTraceConfig:
        if args.config:
            return StrandTraceConfig.from_json(args.config)
        return StrandTraceConfig()

    def _generate_fingerprint(self, args) -> int:
        engine = StrandTraceFingerprint(self._load_config(args))

        if args.batch:
            with open(args.batch, 'r') as f:
                batch_list = json.load(f)
            os.makedirs(args.out, exist_ok=True)
            for item in batch_list:
                out_path = os.path.join(args.out, f"{item['image_id']}.json")
                self._generate_one(engine, item['image'], item['image_id'], args.mode, args.captured_by, out_path)
        elif args.image and args.image_id:
            self._generate_one(engine, args.image, args.image_id, args.mode, args.captured_by, args.out)
        else:
            logger.error("Must provide --image and --image-id or --batch")
            return EXIT_ERROR
        return EXIT_OK

    def _generate_one(self, engine, image_path, image_id, mode, captured_by, out_path):
        logger.info(f"Generating fingerprint for {image_path}")
        start_time = time.time()
        fingerprint = engine.generate_fingerprint(image_path, image_id, mode, captured_by)
        elapsed = time.time() - start_time
        with open(out_path, 'w') as f:
            json.dump(fingerprint, f, indent=2)
        logger.info(f"Fingerprint saved to {out_path} (took {elapsed:.2f}s)")

    def _verify_image(self, args) -> int:
        engine = StrandTraceFingerprint(self._load_config(args))

        if args.batch:
            with open(args.batch, 'r') as f:
                batch_list = json.load(f)
            os.makedirs(args.out, exist_ok=True)
            all_authentic = True
            for item in batch_list:
                fingerprint = load_fingerprint(item['fingerprint'])
                image_id = fingerprint.get('imageId', fingerprint.get('metadata', {}).get('imageId'))
                out_path = os.path.join(args.out, f"{image_id}_report.json")
                orientation = item.get('orientation')
                if orientation is not None:
                    orientation = int(orientation)
                report = self._verify_one(engine, item['image'], fingerprint, orientation, out_path)
                all_authentic = all_authentic and report['is_authentic']
            return EXIT_OK if all_authentic else EXIT_NOT_AUTHENTIC
        elif args.image and args.fingerprint:
            fingerprint = load_fingerprint(args.fingerprint)
            report = self._verify_one(engine, args.image, fingerprint, args.orientation, args.out)
            return EXIT_OK if report['is_authentic'] else EXIT_NOT_AUTHENTIC
        else:
            logger.error("Must provide --image and --fingerprint or --batch")
            return EXIT_ERROR

    def _verify_one(self, engine, image_path, fingerprint, orientation, out_path) -> Dict[str, Any]:
        logger.info(f"Verifying {image_path} against fingerprint")
        start_time = time.time()
        report = engine.verify_image(image_path, fingerprint, orientation)
        elapsed = time.time() - start_time
        with open(out_path, 'w') as f:
            json.dump(report, f, indent=2)
        logger.info(f"Verification report saved to {out_path} (took {elapsed:.2f}s)")
        print(format_report(report))
        if report['is_authentic']:
            logger.info("✓ Image VERIFIED")
        else:
            logger.warning("✗ Image NOT VERIFIED")
        return report

    def _generate_config(self, args) -> int:
        config = StrandTraceConfig()
        config.to_json(args.out)
        logger.info(f"Default configuration saved to {args.out}")
        return EXIT_OK


def main():
    cli = StrandTraceCLI()
    sys.exit(cli.run())


if __name__ == '__main__':
    main()
