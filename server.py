from flask import Flask, Response, jsonify
from functools import wraps
from jinja2 import TemplateError
from werkzeug.exceptions import HTTPException
from werkzeug.serving import make_server
import argparse
import mimetypes
import os
import signal
import sys
import threading

import requests

from fetcher import fetch_url
from gallery import (IMAGE_DIR, THUMB_DIR, GalleryError, PageRenderer,
                     guard_name, list_gallery)
from log import enable_debug_logging, logger
from thumbnails import generate_thumbnails

DEFAULT_CONFIG = {
    'IMAGE_DIR': IMAGE_DIR,
    'THUMB_DIR': THUMB_DIR,
    'THUMBNAILS': True,
    # False keeps every error response at HTTP 200, as the first version did
    'ERROR_STATUS_CODES': True,
}


def error_status(err):
    if isinstance(err, GalleryError):
        return err.status
    if isinstance(err, (FileNotFoundError, NotADirectoryError, IsADirectoryError)):
        return 404
    if isinstance(err, ValueError):
        return 400
    return 500


def error_response(app, message, status):
    response = jsonify({'error': message})
    if app.config['ERROR_STATUS_CODES']:
        response.status_code = status
    return response


# Turns any failure of a route into a JSON error envelope
def handle_error(app, route):
    @wraps(route)
    def wrapper(*args, **kwargs):
        try:
            return route(*args, **kwargs)
        except (GalleryError, OSError, ValueError, TemplateError) as e:
            status = error_status(e)
            if status >= 500:
                logger.error("%s failed: %s", route.__name__, e, exc_info=True)
            else:
                logger.warning("%s failed: %s", route.__name__, e)
            return error_response(app, str(e), status)
    return wrapper


def read_file(directory, name):
    with open(os.path.join(directory, name), 'rb') as f:
        return f.read()


def create_app(config=None):
    app = Flask(__name__)
    app.config.update(DEFAULT_CONFIG)
    app.config.from_prefixed_env('IMGSERVE')
    if config:
        app.config.update(config)

    renderer = PageRenderer(app.jinja_env, thumbnails=app.config['THUMBNAILS'])

    def index():
        images = list_gallery(app.config['IMAGE_DIR'])
        return Response(renderer.render(images), mimetype='text/html')

    def image(name):
        name = guard_name(name)
        data = read_file(app.config['IMAGE_DIR'], name)
        mimetype = mimetypes.guess_type(name)[0] or 'image/gif'
        return Response(data, mimetype=mimetype)

    def thumbnail(name):
        name = guard_name(name)
        data = read_file(app.config['THUMB_DIR'], name)
        return Response(data, mimetype='image/jpeg')

    app.add_url_rule('/', 'index', handle_error(app, index))
    app.add_url_rule('/images/<path:name>', 'image', handle_error(app, image))
    if app.config['THUMBNAILS']:
        thumbnail_view = handle_error(app, thumbnail)
        app.add_url_rule('/thumbnails/<path:name>', 'thumbnail', thumbnail_view)
        app.add_url_rule('/thumbs/<path:name>', 'thumbs', thumbnail_view)

    @app.errorhandler(HTTPException)
    def http_error(e):
        return error_response(app, e.description, e.code)

    return app


# ":80" -> ("0.0.0.0", 80)
def parse_address(address):
    host, sep, port = address.rpartition(':')
    if not sep:
        raise ValueError(f"Address has no port: {address!r}")
    host = host.strip('[]') or '0.0.0.0'
    return host, int(port)


def serve(app, address):
    host, port = parse_address(address)
    server = make_server(host, port, app, threaded=True)

    # shutdown() blocks until serve_forever returns, so it cannot run in the handler itself
    def stop(signum, frame):
        logger.info("Received signal %d, shutting down", signum)
        threading.Thread(target=server.shutdown, daemon=True).start()

    signal.signal(signal.SIGINT, stop)
    signal.signal(signal.SIGTERM, stop)

    logger.info("Serving %s on http://%s:%d/", app.config['IMAGE_DIR'], host, port)
    server.serve_forever()
    logger.info("Server stopped")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Serve a directory of images as a gallery')
    parser.add_argument('--address', default=':80', help='address of the server (default: :80)')
    parser.add_argument('--fetch', default='', help='fetch a URL, print its body and exit')
    parser.add_argument('--thumb', action='store_true', help='generate thumbnails and exit')
    parser.add_argument('--thumb-strict', action='store_true',
                        help='stop the thumbnail pass at the first failing image')
    parser.add_argument('--no-thumbnails', action='store_true',
                        help='serve the gallery without the thumbnail grid')
    parser.add_argument('--debug', action='store_true', help='enable debug logging')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    if args.debug:
        enable_debug_logging()

    if args.fetch:
        try:
            fetch_url(args.fetch)
        except requests.RequestException as e:
            logger.error("Could not fetch %s: %s", args.fetch, e)
            return 1
        return 0

    if args.thumb or args.thumb_strict:
        try:
            report = generate_thumbnails(IMAGE_DIR, THUMB_DIR, stop_on_error=args.thumb_strict)
        except (OSError, ValueError) as e:
            logger.error("Thumbnail pass aborted: %s", e)
            return 1
        return 0 if report.ok else 1

    app = create_app({'THUMBNAILS': not args.no_thumbnails})
    serve(app, args.address)
    return 0


if __name__ == '__main__':
    sys.exit(main())
