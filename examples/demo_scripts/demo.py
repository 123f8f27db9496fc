#!/usr/bin/env python3
"""
Demo script for StrandTrace
Draws a few test photos, fingerprints the original in both modes and
verifies each variant against it.
"""

import json
import os

from PIL import Image, ImageDraw

from strandtrace import DimensionMismatchError, StrandTraceFingerprint
from strandtrace.cli import format_report, save_fingerprint

IMAGE_ID = 'demo_001'


def create_test_images(out_dir):
    """Create test images for demonstration"""
    print("Creating test images...")
    os.makedirs(out_dir, exist_ok=True)

    # Original: gradient with a couple of shapes
    original = Image.new('RGB', (400, 300), color='white')
    draw = ImageDraw.Draw(original)
    for y in range(300):
        shade = int(255 * (1 - y / 300))
        draw.rectangle([(0, y), (400, y + 1)], fill=(shade, shade, 255))
    draw.ellipse([50, 50, 150, 150], fill='red', outline='darkred', width=3)
    draw.rectangle([200, 100, 350, 200], fill='green', outline='darkgreen', width=3)
    draw.text((120, 250), "StrandTrace Test Image", fill='white')

    # Retouched: a patch painted right across the middle of the frame
    retouched = original.copy()
    ImageDraw.Draw(retouched).rectangle([0, 140, 400, 160], fill=(255, 255, 0))

    # Recompressed: same content, lossy save
    recompressed = os.path.join(out_dir, 'recompressed.jpg')
    original.save(recompressed, quality=95)

    paths = {
        'original': os.path.join(out_dir, 'original.png'),
        'retouched': os.path.join(out_dir, 'retouched.png'),
        'recompressed': recompressed,
        'rotated': os.path.join(out_dir, 'rotated.png'),
    }
    original.save(paths['original'])
    retouched.save(paths['retouched'])
    original.rotate(90, expand=True).save(paths['rotated'])
    for name, path in paths.items():
        print(f"✓ Created {path} ({name})")
    return paths


def verify_all(engine, fingerprint, paths):
    for name, path in paths.items():
        print(f"\n--- {name} ---")
        try:
            report = engine.verify_image(path, fingerprint)
        except DimensionMismatchError as e:
            print(f"✗ {e}")
            continue
        print(format_report(report))


def run_demo(out_dir='demo_output'):
    """Run the StrandTrace demonstration"""
    print("=" * 60)
    print("StrandTrace Fingerprinting - Demo")
    print("=" * 60)

    paths = create_test_images(out_dir)
    engine = StrandTraceFingerprint()

    for mode in ('hash', 'tolerance'):
        print("\n" + "=" * 60)
        print(f"Fingerprinting original image in {mode} mode")
        print("=" * 60)

        fingerprint = engine.generate_fingerprint(paths['original'], IMAGE_ID, mode=mode)
        fp_path = os.path.join(out_dir, f'original_{mode}.json')
        save_fingerprint(fingerprint, fp_path)
        print(f"  - Strands: {len(fingerprint['strands'])}")
        print(f"  - Size on disk: {len(json.dumps(fingerprint))} bytes")

        verify_all(engine, fingerprint, paths)

    print("\n" + "=" * 60)
    print("Demo Complete!")
    print("=" * 60)


if __name__ == '__main__':
    run_demo()
