"""
Visualize Edge Detection

Standalone script to inspect every stage of the edge detector.

Usage:
    python viz_edges.py <image_directory> [--low 50] [--high 150] [--sigma 1.4]
"""

import argparse
import sys
from pathlib import Path

import cv2
import numpy as np

sys.path.append(str(Path(__file__).parent.parent))

from config import PipelineConfig
from pipeline import fit_to_max_dimension, load_rgba, save_rgba
from preprocessors import EdgeDetector
from preprocessors.visualization import create_grid_visualization


def stage_panels(stages: dict):
    """Displayable panels and labels for the edge stages."""
    direction = ((stages['direction'] + np.pi) / (2 * np.pi) * 179).astype(np.uint8)
    hsv = np.dstack([direction, np.full_like(direction, 255),
                     np.clip(stages['magnitude'], 0, 255).astype(np.uint8)])
    direction_rgb = cv2.cvtColor(hsv, cv2.COLOR_HSV2RGB)

    panels = [
        stages['luminance'],
        stages['blurred'],
        stages['magnitude'],
        direction_rgb,
        stages['suppressed'],
        stages['linked'],
        stages['edges'],
    ]
    labels = ["1. Luminance", "2. Blurred", "3. Magnitude", "4. Direction",
              "5. Suppressed", "6. Hysteresis", "7. Thinned"]
    return panels, labels


def main():
    cfg = PipelineConfig.EDGE_DETECTION

    parser = argparse.ArgumentParser(description='Visualize edge detection stages')
    parser.add_argument('input_dir', type=str)
    parser.add_argument('--low', type=float, default=cfg['LOW_THRESHOLD'])
    parser.add_argument('--high', type=float, default=cfg['HIGH_THRESHOLD'])
    parser.add_argument('--sigma', type=float, default=cfg['SIGMA'])
    args = parser.parse_args()

    input_dir = Path(args.input_dir)
    if not input_dir.exists():
        print(f"Error: Path does not exist: {input_dir}")
        sys.exit(1)

    output_dir = input_dir / "viz_edges"
    output_dir.mkdir(exist_ok=True)

    edge_detector = EdgeDetector(dict(cfg, LOW_THRESHOLD=args.low,
                                      HIGH_THRESHOLD=args.high, SIGMA=args.sigma))

    image_files = []
    for ext in PipelineConfig.PIPELINE['IMAGE_EXTENSIONS']:
        image_files.extend(input_dir.glob(ext))
    image_files = sorted(set(image_files))

    print(f"Found {len(image_files)} images\n")

    for idx, img_path in enumerate(image_files, 1):
        print(f"[{idx}/{len(image_files)}] {img_path.name}")

        image = load_rgba(img_path)
        if image is None:
            continue

        image = fit_to_max_dimension(image, PipelineConfig.PIPELINE['MAX_DIMENSION'])
        stages = edge_detector.detect_stages(image)
        panels, labels = stage_panels(stages)

        vis = create_grid_visualization([image] + panels, ["0. Input"] + labels, grid_size=(2, 4))

        edge_count = int(np.count_nonzero(stages['edges']))
        print(f"  Edge pixels: {edge_count}")

        out_path = output_dir / f"{img_path.stem}_edges.png"
        save_rgba(out_path, vis)
        print(f"  Saved: {out_path.name}")

    print(f"\nResults saved to: {output_dir.absolute()}")


if __name__ == "__main__":
    main()
