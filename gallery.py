import os

from log import logger

IMAGE_DIR = 'imgs'
THUMB_DIR = 'thumbs'
THUMB_EXT = '.jpeg'
THUMBS_PER_ROW = 5

INDEX_HTML = '''
<!DOCTYPE html>
<html>
<head>
    <title>Images</title>
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <style>
        body { background: #111; color: #fff; font-family: sans-serif; text-align: center; }
        #img { max-width: 90vw; max-height: 75vh; }
        button { font-size: 1.2em; margin: 0.5em; }
        #thumbs { margin: 1em auto; }
        #thumbs img { cursor: pointer; border: 2px solid #fff; background: #222; }
    </style>
</head>
<body>
    <img id="img"/><br/>
    <button id="previous" onclick="previous()">Previous</button>
    <button id="next" onclick="next()">Next</button>
    {% if thumbnails %}<table id="thumbs"></table>{% endif %}
    <script>
    var images = {{ images|tojson }};
    var current = 0;
    var img = document.getElementById("img");

    function show(index) {
        if (images.length == 0) {
            return;
        }
        current = index;
        img.src = "images/" + encodeURIComponent(images[current]);
    }
    function next() {
        if (images.length > 0) {
            show((current + 1) % images.length);
        }
    }
    function previous() {
        if (images.length > 0) {
            show((images.length + current - 1) % images.length);
        }
    }
    {% if thumbnails %}
    function thumbnailName(name) {
        var dot = name.lastIndexOf(".");
        var stem = dot > 0 ? name.substring(0, dot) : name;
        return stem + {{ thumb_ext|tojson }};
    }
    function handler(index) {
        return function () { show(index); };
    }
    var thumbs = document.getElementById("thumbs");
    var tr = null;
    for (var i = 0; i < images.length; i++) {
        if (i % {{ per_row }} == 0) {
            tr = document.createElement("tr");
            thumbs.appendChild(tr);
        }
        var thumb = document.createElement("img");
        thumb.src = "thumbnails/" + encodeURIComponent(thumbnailName(images[i]));
        thumb.alt = images[i];
        thumb.onclick = handler(i);
        var td = document.createElement("td");
        td.appendChild(thumb);
        tr.appendChild(td);
    }
    {% endif %}
    show(0);
    </script>
</body>
</html>
'''


class GalleryError(Exception):
    """Base error for failures that are reported to the client."""
    status = 500


class FileRejected(GalleryError):
    """A route parameter tried to escape the base directory."""
    status = 400


def guard_name(raw):
    """Reduce a user-supplied filename to its base name.

    Trailing separators are dropped first, so ``../..`` and ``../../`` both
    collapse to ``..`` and get rejected. The result is only ever joined to a
    fixed base directory.
    """
    name = os.path.basename(raw.rstrip('/'))
    if name == '':
        name = '.'
    if name in ('..', '.'):
        logger.warning("Rejected path parameter %r", raw)
        raise FileRejected("file not found")
    return name


# Everything in the directory is listed, including files that are not images.
def list_gallery(image_dir=IMAGE_DIR):
    names = sorted(os.listdir(image_dir))
    logger.debug("Listed %d entries in %s", len(names), image_dir)
    return names


class PageRenderer:
    """Compiled index page, shared read-only between requests."""

    def __init__(self, jinja_env, thumbnails=True):
        self.template = jinja_env.from_string(INDEX_HTML)
        self.thumbnails = thumbnails

    def render(self, images):
        return self.template.render(
            images=list(images),
            thumbnails=self.thumbnails,
            per_row=THUMBS_PER_ROW,
            thumb_ext=THUMB_EXT,
        )
