from PIL import Image
import contextlib
import os
import tempfile
import time

from gallery import IMAGE_DIR, THUMB_DIR, THUMB_EXT
from log import logger

THUMB_WIDTH = 128


class ThumbnailReport:
    """Outcome of one thumbnail pass."""

    def __init__(self):
        self.created = []
        self.skipped = []
        self.failed = {}

    @property
    def ok(self):
        return not self.failed

    def __repr__(self):
        return (f"ThumbnailReport(created={len(self.created)}, "
                f"skipped={len(self.skipped)}, failed={len(self.failed)})")


# a.gif -> a.jpeg
def thumbnail_name(name):
    stem, _ = os.path.splitext(name)
    return stem + THUMB_EXT


# Height follows the aspect ratio of the source
def thumbnail_size(width, height, target_width=THUMB_WIDTH):
    return target_width, max(1, round(target_width * height / width))


# Decodes one source image and writes its JPEG thumbnail to output_path.
# The file is written under a temporary name first and renamed into place.
def make_thumbnail(source_path, output_path, width=THUMB_WIDTH):
    with Image.open(source_path) as img:
        # GIFs decode as palette images, which JPEG cannot store
        img = img.convert("RGB")
        resized = img.resize(thumbnail_size(img.width, img.height, width),
                             Image.Resampling.LANCZOS)

    fd, tmp_path = tempfile.mkstemp(prefix='.', suffix='.part',
                                    dir=os.path.dirname(output_path) or '.')
    try:
        with os.fdopen(fd, 'wb') as output:
            resized.save(output, format='JPEG')
        os.replace(tmp_path, output_path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise
    return resized.size


def generate_thumbnails(image_dir=IMAGE_DIR, thumb_dir=THUMB_DIR,
                        width=THUMB_WIDTH, stop_on_error=False):
    """Create a thumbnail for every entry of image_dir that has none yet.

    Existing thumbnails are skipped without touching their source, so the pass
    can be re-run after new images are added. A file that cannot be decoded or
    written is recorded in the report and the pass moves on, unless
    stop_on_error is set, in which case the error propagates. Only one pass
    should run against a thumbnail directory at a time.
    """
    start = time.time()
    names = sorted(os.listdir(image_dir))

    if not os.path.isdir(thumb_dir):
        os.mkdir(thumb_dir, 0o755)
        logger.info("Created thumbnail directory %s", thumb_dir)

    report = ThumbnailReport()
    for name in names:
        thumb = thumbnail_name(name)
        output_path = os.path.join(thumb_dir, thumb)
        if os.path.exists(output_path):
            report.skipped.append(name)
            continue

        try:
            size = make_thumbnail(os.path.join(image_dir, name), output_path, width)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            if stop_on_error:
                raise
            logger.error("Failed to make thumbnail for %s: %s", name, e)
            report.failed[name] = str(e)
            continue
        logger.info("Saved %s (%dx%d)", output_path, size[0], size[1])
        report.created.append(name)

    logger.info("Thumbnail pass done in %.2f seconds: %d created, %d skipped, %d failed",
                time.time() - start, len(report.created), len(report.skipped),
                len(report.failed))
    for name, message in report.failed.items():
        logger.warning("  %s: %s", name, message)
    return report
