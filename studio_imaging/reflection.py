"""
Reflection Synthesizer
Creates a floor reflection strip for a transparent-background product image.

The strip is a separate image: the top of the subject mirrored left to right,
faded with a three stop alpha gradient and softened with a blur.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, fields
from typing import Iterable, List, Mapping, Optional, Union

import numpy as np
from PIL import Image, ImageFilter

from .dataurl import parse_data_url
from .errors import ImagingError
from .models import EncodedImage, PNG
from .surface import SurfaceBackend, allocate_surface, get_backend, open_surface

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4
MAX_BLUR = 20

# Fraction of the fade-stop opacity kept at the fadeStrength position
FADE_STOP_RATIO = 0.3


@dataclass(frozen=True)
class ReflectionOptions:
    """
    Reflection settings.

    Fields:
        intensity: 0-1, how much of the reflection is removed at its top edge
        height: 0-1, strip height as a fraction of the subject height
        blur: 0-20, blur radius in pixels
        fade_strength: 0-1, position of the middle gradient stop
        offset: gap in pixels between subject and reflection when stacked
    """
    intensity: float = 0.65
    height: float = 0.6
    blur: float = 4
    fade_strength: float = 0.8
    offset: int = 0

    def __post_init__(self):
        if not 0.0 <= self.intensity <= 1.0:
            raise ValueError(f"intensity must be between 0 and 1, got {self.intensity}")
        if not 0.0 < self.height <= 1.0:
            raise ValueError(f"height must be greater than 0 and at most 1, got {self.height}")
        if not 0 <= self.blur <= MAX_BLUR:
            raise ValueError(f"blur must be between 0 and {MAX_BLUR}, got {self.blur}")
        if not 0.0 <= self.fade_strength <= 1.0:
            raise ValueError(f"fade_strength must be between 0 and 1, got {self.fade_strength}")

    @classmethod
    def from_dict(cls, values: Optional[Mapping] = None) -> 'ReflectionOptions':
        """Build options from a partial mapping; camelCase keys are accepted"""
        if not values:
            return cls()

        aliases = {'fadeStrength': 'fade_strength'}
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in values.items():
            name = aliases.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown reflection option: {key}")
            if value is None or value == '':
                continue
            try:
                kwargs[name] = int(value) if name == 'offset' else float(value)
            except (TypeError, ValueError):
                raise ValueError(f"Reflection option {key} must be numeric, got {value!r}") from None
        return cls(**kwargs)

    def to_dict(self) -> dict:
        return {
            'intensity': self.intensity,
            'height': self.height,
            'blur': self.blur,
            'fadeStrength': self.fade_strength,
            'offset': self.offset,
        }


@dataclass(frozen=True)
class ReflectionItem:
    """One subject of a batch: its name and encoded bytes (or a data URL)"""
    name: str
    image_data: Union[bytes, str]


@dataclass(frozen=True)
class ReflectionResult:
    """Outcome for one batch item; exactly one of reflection/error is set"""
    name: str
    reflection: Optional[EncodedImage] = None
    error: Optional[ImagingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def reflection_height(subject_height: int, options: ReflectionOptions) -> int:
    return int(math.floor(subject_height * options.height))


def gradient_keep_factors(strip_height: int, options: ReflectionOptions) -> np.ndarray:
    """
    Per-row fraction of alpha left after the destination-out gradient.

    Stops (position -> alpha kept): 0 -> 1 - intensity,
    fade_strength -> 1 - 0.3 * intensity, 1 -> 0. Rows are sampled at
    their pixel centres.
    """
    positions = (np.arange(strip_height, dtype=np.float64) + 0.5) / strip_height
    stops = [0.0, options.fade_strength, 1.0]
    kept = [1.0 - options.intensity, 1.0 - options.intensity * FADE_STOP_RATIO, 0.0]
    return np.interp(positions, stops, kept)


def _apply_fade(surface: Image.Image, options: ReflectionOptions) -> None:
    """Subtract the gradient from the surface alpha, in place"""
    alpha = np.asarray(surface.getchannel('A'), dtype=np.float64)
    keep = gradient_keep_factors(surface.height, options)
    faded = np.clip(np.rint(alpha * keep[:, np.newaxis]), 0, 255).astype(np.uint8)
    surface.putalpha(Image.fromarray(faded))


def _blur(surface: Image.Image, radius: float) -> Image.Image:
    # Blur premultiplied so colour from transparent pixels does not bleed in
    with surface.convert('RGBa') as premultiplied:
        with premultiplied.filter(ImageFilter.GaussianBlur(radius=radius)) as blurred:
            return blurred.convert('RGBA')


def generate_reflection(data: bytes, options: Optional[ReflectionOptions] = None,
                        backend: Optional[SurfaceBackend] = None) -> EncodedImage:
    """
    Generate the reflection strip for a transparent subject image.

    Args:
        data: Encoded subject image (background already removed)
        options: Reflection settings (defaults when omitted)
        backend: Surface backend (default: Pillow)

    Returns:
        EncodedImage: PNG of size width x floor(height * options.height)

    Raises:
        DecodeError, SurfaceUnavailableError, EncodeError: on failure
    """
    opts = options or ReflectionOptions()
    backend = get_backend(backend)

    with open_surface(data, backend) as subject:
        width, height = subject.size
        strip_height = reflection_height(height, opts)

        logger.info(
            f"🪞 Generating reflection: subject {width}x{height}, "
            f"strip height {strip_height}, options {opts.to_dict()}"
        )

        with allocate_surface(width, strip_height, backend) as canvas:
            with subject.convert('RGBA') as rgba:
                with rgba.crop((0, 0, width, strip_height)) as top:
                    with top.transpose(Image.Transpose.FLIP_LEFT_RIGHT) as mirrored:
                        canvas.paste(mirrored, (0, 0))

            _apply_fade(canvas, opts)

            if opts.blur > 0:
                with _blur(canvas, opts.blur) as blurred:
                    encoded = backend.encode(blurred, PNG)
            else:
                encoded = backend.encode(canvas, PNG)

    logger.info("✅ Reflection generated successfully")
    return EncodedImage(data=encoded, media_type=PNG, width=width, height=strip_height)


def _coerce_item(item) -> ReflectionItem:
    if isinstance(item, ReflectionItem):
        return item
    if isinstance(item, Mapping):
        name = item.get('name')
        image_data = item.get('imageData', item.get('image_data', item.get('data')))
    else:
        name, image_data = item
    if not name or image_data is None:
        raise ValueError("Each batch item needs a name and image data")
    if not isinstance(image_data, (bytes, bytearray, str)):
        raise ValueError(f"Image data for {name} must be bytes or a data URL, got {type(image_data).__name__}")
    return ReflectionItem(name=str(name), image_data=image_data)


def _reflect_item(item: ReflectionItem, options: ReflectionOptions,
                  backend: Optional[SurfaceBackend]) -> EncodedImage:
    data = item.image_data
    if isinstance(data, str):
        data, _ = parse_data_url(data)
    return generate_reflection(data, options, backend)


def generate_reflections(items: Iterable, options: Optional[ReflectionOptions] = None,
                         max_workers: Optional[int] = None, fail_fast: bool = False,
                         backend: Optional[SurfaceBackend] = None) -> List[ReflectionResult]:
    """
    Generate reflections for many subjects concurrently.

    Args:
        items: ReflectionItem objects, {name, imageData} mappings or (name, data) pairs
        options: Reflection settings shared by every item
        max_workers: Thread pool size (default: up to 4)
        fail_fast: Raise the first failure instead of reporting it per item
        backend: Surface backend (default: Pillow)

    Returns:
        list: One ReflectionResult per item, in input order, each carrying its
        source name and either the reflection or the error
    """
    prepared = [_coerce_item(item) for item in items]
    if not prepared:
        return []

    opts = options or ReflectionOptions()
    workers = max_workers or min(DEFAULT_MAX_WORKERS, len(prepared))
    logger.info(f"🪞 Generating reflections for {len(prepared)} images ({workers} workers)")

    results = []
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(_reflect_item, item, opts, backend) for item in prepared]
        for item, future in zip(prepared, futures):
            try:
                results.append(ReflectionResult(name=item.name, reflection=future.result()))
            except ImagingError as exc:
                if fail_fast:
                    for pending in futures:
                        pending.cancel()
                    raise
                logger.warning(f"⚠️ Reflection failed for {item.name}: {exc}")
                results.append(ReflectionResult(name=item.name, error=exc))

    failed = sum(1 for result in results if not result.ok)
    logger.info(f"✅ Reflections complete: {len(results) - failed} succeeded, {failed} failed")
    return results


def stack_reflection(subject: bytes, reflection: bytes, offset: int = 0,
                     backend: Optional[SurfaceBackend] = None) -> EncodedImage:
    """
    Place a reflection strip below its subject.

    A negative offset overlaps the strip with the subject's base; the
    subject is drawn on top.
    """
    backend = get_backend(backend)

    with open_surface(subject, backend) as subject_surface, open_surface(reflection, backend) as strip:
        offset = max(offset, -subject_surface.height)
        strip_top = subject_surface.height + offset
        width = max(subject_surface.width, strip.width)
        height = max(subject_surface.height, strip_top + strip.height)

        with allocate_surface(width, height, backend) as canvas:
            with strip.convert('RGBA') as strip_rgba:
                canvas.alpha_composite(strip_rgba, dest=((width - strip.width) // 2, strip_top))
            with subject_surface.convert('RGBA') as subject_rgba:
                canvas.alpha_composite(subject_rgba, dest=((width - subject_surface.width) // 2, 0))
            encoded = backend.encode(canvas, PNG)

    return EncodedImage(data=encoded, media_type=PNG, width=width, height=height)
