"""
Control-Map Preprocessing Pipeline

Main script that turns images into control maps for a downstream generator.
Modes: edge | segmentation | depth | pose | light | normal

Usage:
    python pipeline.py <image_directory> --mode edge [--output <output_dir>] [--visualize]
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import cv2
import numpy as np

from config import PipelineConfig
from preprocessors import (Mode, EdgeParams, SegmentationParams, DepthParams, PoseParams,
                           LightParams, NormalParams, ControlMapResult, run_mode)
from preprocessors.buffers import validate_rgba
from preprocessors.light_extraction import LightExtractor
from preprocessors.visualization import (add_label_to_image, colorize_labels,
                                         draw_light_sources)

logger = logging.getLogger(__name__)


def load_rgba(path: Path) -> Optional[np.ndarray]:
    """Decode an image file into an RGBA uint8 buffer, or None if unreadable."""
    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None:
        return None
    if image.dtype != np.uint8:
        image = cv2.convertScaleAbs(image, alpha=255.0 / max(float(image.max()), 1.0))
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)


def save_rgba(path: Path, image: np.ndarray) -> bool:
    """Encode an RGBA (or RGB) buffer to disk."""
    if image.ndim == 3 and image.shape[2] == 4:
        bgr = cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA)
    else:
        bgr = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
    return bool(cv2.imwrite(str(path), bgr))


def fit_to_max_dimension(image: np.ndarray, max_dimension: int = 1024) -> np.ndarray:
    """Downscale so the longest side is at most `max_dimension`, keeping aspect ratio."""
    validate_rgba(image)
    h, w = image.shape[:2]
    if w <= max_dimension and h <= max_dimension:
        return image
    scale = max_dimension / max(w, h)
    new_w = max(1, int(round(w * scale)))
    new_h = max(1, int(round(h * scale)))
    return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)


def load_keypoints(path: Path) -> List[list]:
    """
    Read detector output from JSON.

    Accepts a list of poses, where each pose is either a list of 17 keypoints
    or an object with a 'keypoints' list; keypoints are {'x', 'y', 'score'}
    objects or [x, y, score] triples.
    """
    with open(path, 'r', encoding='utf-8') as fh:
        data = json.load(fh)
    poses = []
    for pose in data:
        poses.append(pose['keypoints'] if isinstance(pose, dict) else pose)
    return poses


class ControlMapPipeline:
    """Main pipeline for control-map preprocessing."""

    def __init__(self, max_dimension: int = None, rng: Optional[np.random.Generator] = None):
        """
        Initialize pipeline.

        Args:
            max_dimension: Longest side allowed before processing
            rng: Random generator shared by segmentation runs
        """
        self.max_dimension = max_dimension or PipelineConfig.PIPELINE['MAX_DIMENSION']
        self.rng = rng
        self.viz_colors = PipelineConfig.VIZ_COLORS

    def process_image(self, image: np.ndarray, params) -> ControlMapResult:
        """
        Run one mode on an image.

        Args:
            image: RGBA input image
            params: Mode parameter record

        Returns:
            ControlMapResult
        """
        image = fit_to_max_dimension(image, self.max_dimension)
        result = run_mode(image, params, rng=self.rng)
        logger.info("%s: %dx%d processed", result.mode.value, image.shape[1], image.shape[0])
        return result

    def visualize_results(self, image: np.ndarray, result: ControlMapResult,
                          threshold: float = None) -> np.ndarray:
        """
        Side-by-side visualization of the input and its control map.

        Args:
            image: Original RGBA image
            result: Result from process_image
            threshold: Brightness threshold used for light mode

        Returns:
            RGB visualization (2 panels, 3 for light mode)
        """
        image = fit_to_max_dimension(image, self.max_dimension)
        panels = [add_label_to_image(image, "1. Input")]

        if result.mode is Mode.LIGHT:
            extractor = LightExtractor(dict(PipelineConfig.LIGHT_EXTRACTION,
                                            THRESHOLD=threshold or PipelineConfig.LIGHT_EXTRACTION['THRESHOLD']))
            labels, count = extractor.label_map(image)
            panels.append(add_label_to_image(colorize_labels(labels), f"2. Bright regions ({count})"))
            lights_vis = draw_light_sources(image, result.lights,
                                            outline=self.viz_colors['LIGHT_OUTLINE'],
                                            dim=self.viz_colors['BG_DIM'])
            panels.append(add_label_to_image(lights_vis, f"3. Lights ({len(result.lights)})"))
        else:
            panels.append(add_label_to_image(result.image, f"2. {result.mode.value.title()}"))

        return np.hstack(panels)


def build_params(args, image_path: Path) -> Optional[object]:
    """Mode parameters for one image; None when a required side input is missing."""
    mode = Mode(args.mode)
    if mode is Mode.EDGE:
        return EdgeParams(low_threshold=args.low, high_threshold=args.high, sigma=args.sigma,
                          use_thinning=not args.no_thinning, sub_pixel=not args.lattice_nms)
    if mode is Mode.SEGMENTATION:
        return SegmentationParams(clusters=args.clusters, iterations=args.iterations, seed=args.seed)
    if mode is Mode.NORMAL:
        return NormalParams(strength=args.strength, invert_y=args.invert_y)
    if mode is Mode.LIGHT:
        return LightParams(threshold=args.threshold)
    if mode is Mode.POSE:
        keypoint_path = image_path.with_name(f"{image_path.stem}_keypoints.json")
        if not keypoint_path.exists():
            return None
        return PoseParams(poses=load_keypoints(keypoint_path),
                          confidence_threshold=args.confidence,
                          measure_head=args.measure_head)
    depth_path = image_path.with_name(f"{image_path.stem}_depth.npy")
    if not depth_path.exists():
        return None
    return DepthParams(depth=np.load(depth_path))


def main():
    cfg_edge = PipelineConfig.EDGE_DETECTION
    cfg_seg = PipelineConfig.SEGMENTATION

    parser = argparse.ArgumentParser(description='Control-Map Preprocessing Pipeline')
    parser.add_argument('input_dir', type=str, help='Directory containing input images')
    parser.add_argument('--mode', '-m', type=str, default=Mode.EDGE.value,
                        choices=[m.value for m in Mode], help='Control map to produce')
    parser.add_argument('--output', '-o', type=str, help='Output directory (default: input_dir/control_maps)')
    parser.add_argument('--visualize', '-v', action='store_true', help='Generate visualization images')
    parser.add_argument('--max-dimension', type=int, default=PipelineConfig.PIPELINE['MAX_DIMENSION'])
    parser.add_argument('--debug', action='store_true', help='Verbose logging')

    # Edge
    parser.add_argument('--low', type=float, default=cfg_edge['LOW_THRESHOLD'])
    parser.add_argument('--high', type=float, default=cfg_edge['HIGH_THRESHOLD'])
    parser.add_argument('--sigma', type=float, default=cfg_edge['SIGMA'])
    parser.add_argument('--no-thinning', action='store_true')
    parser.add_argument('--lattice-nms', action='store_true', help='8-direction NMS instead of sub-pixel')
    # Segmentation
    parser.add_argument('--clusters', '-k', type=int, default=cfg_seg['CLUSTERS'])
    parser.add_argument('--iterations', type=int, default=cfg_seg['ITERATIONS'])
    parser.add_argument('--seed', type=int, default=cfg_seg['SEED'])
    # Normal
    parser.add_argument('--strength', type=float, default=PipelineConfig.NORMAL_MAP['STRENGTH'])
    parser.add_argument('--invert-y', action='store_true')
    # Light
    parser.add_argument('--threshold', type=float, default=PipelineConfig.LIGHT_EXTRACTION['THRESHOLD'])
    # Pose
    parser.add_argument('--confidence', type=float, default=PipelineConfig.POSE['CONFIDENCE_THRESHOLD'])
    parser.add_argument('--measure-head', action='store_true',
                        help='Compute head fields from keypoints instead of placeholders')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )

    input_dir = Path(args.input_dir)
    if not input_dir.exists():
        print(f"Error: Input directory does not exist: {input_dir}")
        sys.exit(1)

    output_dir = Path(args.output) if args.output else input_dir / "control_maps"
    output_dir.mkdir(exist_ok=True, parents=True)

    # Find images
    image_files = []
    for ext in PipelineConfig.PIPELINE['IMAGE_EXTENSIONS']:
        image_files.extend(input_dir.glob(ext))
    image_files = sorted(set(image_files))

    print(f"Found {len(image_files)} image(s) to process\n")

    if not image_files:
        print("No images found!")
        sys.exit(1)

    rng = np.random.default_rng(args.seed)
    pipeline = ControlMapPipeline(max_dimension=args.max_dimension, rng=rng)

    for idx, img_path in enumerate(image_files, 1):
        print(f"[{idx}/{len(image_files)}] Processing {img_path.name}...")

        image = load_rgba(img_path)
        if image is None:
            print("  Warning: Could not read image")
            continue

        params = build_params(args, img_path)
        if params is None:
            print(f"  Warning: No {args.mode} input found next to {img_path.name}, skipping")
            continue

        result = pipeline.process_image(image, params)

        stem = f"{img_path.stem}_{result.mode.value}"
        if result.image is not None:
            save_rgba(output_dir / f"{stem}.png", result.image)
            print(f"  Saved: {stem}.png")

        if result.mode in (Mode.LIGHT, Mode.POSE):
            records = result.records()
            with open(output_dir / f"{stem}.json", 'w', encoding='utf-8') as fh:
                json.dump(records, fh, indent=2)
            print(f"  {result.mode.value.title()} records: {len(records)} | Saved: {stem}.json")

        if args.visualize:
            vis = pipeline.visualize_results(image, result, threshold=args.threshold)
            save_rgba(output_dir / f"{stem}_viz.png", vis)
            print(f"  Saved: {stem}_viz.png")

    print(f"\nDone! Results saved to: {output_dir}")


if __name__ == "__main__":
    main()
