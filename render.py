import logging
import os
import sys
from argparse import ArgumentParser
from pathlib import Path

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")

# Only matters when the tensorflow kernel gets imported.
if not _cli_verbose and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


from mandelpool import KERNELS, MandelbrotError, RenderRequest, render_request


def build_parser():
    parser = ArgumentParser(description='Render the Mandelbrot set with a pool of row workers.')

    parser.add_argument('--x1', type=float, dest='x1', metavar='X1',
                        help='real part of the lower-left corner of the viewport (default: -2.5)')
    parser.add_argument('--y1', type=float, dest='y1', metavar='Y1',
                        help='imaginary part of the lower-left corner of the viewport (default: -2.0)')
    parser.add_argument('--x2', type=float, dest='x2', metavar='X2',
                        help='real part of the upper-right corner of the viewport (default: 1.0)')
    parser.add_argument('--y2', type=float, dest='y2', metavar='Y2',
                        help='imaginary part of the upper-right corner of the viewport (default: 2.0)')

    parser.add_argument('--width', type=int, dest='width', metavar='WIDTH',
                        help='number of pixel columns in the output (default: 1000)')
    parser.add_argument('--height', type=int, dest='height', metavar='HEIGHT',
                        help='number of pixel rows in the output (default: 1000)')
    parser.add_argument('--max-iterations', type=int, dest='max_iter', metavar='MAX_ITERATIONS',
                        help='iteration cap; points that reach it are painted black (default: 1000)')

    parser.add_argument('--workers', type=int, dest='num_workers', metavar='WORKERS',
                        help='number of parallel worker units (default: logical CPU count)')
    parser.add_argument('--kernel', choices=sorted(KERNELS), default='numpy',
                        help='row kernel used by every worker unit')
    parser.add_argument('--timeout', type=float, default=None, metavar='SECONDS',
                        help='give up when the image is not complete after this many seconds')
    parser.add_argument('--no-retry', dest='retry', action='store_false',
                        help='fail immediately instead of retrying the rows of a failed worker once')

    parser.add_argument('--query', type=str, default=None, metavar='QUERY',
                        help='URL query string such as "x1=-1&x2=0&maxIter=200"; explicit flags override it')

    parser.add_argument('--output', type=str, default='mandelbrot.png',
                        help='destination image file (default: mandelbrot.png)')
    parser.add_argument('--format', type=str, dest='format', metavar='FORMAT', default=None,
                        help='file format for the output image; defaults to the --output extension or "png"')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging of worker dispatch and timings.')

    return parser


_REQUEST_FIELDS = ('x1', 'y1', 'x2', 'y2', 'width', 'height', 'max_iter', 'num_workers')


def resolve_request(opt, parser: ArgumentParser) -> RenderRequest:
    try:
        request = RenderRequest.from_query(opt.query) if opt.query else RenderRequest()
        overrides = {name: getattr(opt, name) for name in _REQUEST_FIELDS if getattr(opt, name) is not None}
        return request.replace(**overrides)
    except MandelbrotError as exc:
        parser.error(str(exc))


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def resolve_output(opt, parser: ArgumentParser) -> tuple[Path, str]:
    output_path = Path(opt.output).expanduser()
    if output_path.exists() and output_path.is_dir():
        parser.error("--output must point to a file, not a directory.")

    image_format = (opt.format or output_path.suffix or "png").lower().lstrip(".")
    if output_path.suffix:
        if opt.format and output_path.suffix.lower().lstrip(".") != image_format:
            parser.error(f"--output extension {output_path.suffix} does not match --format {image_format}.")
    else:
        output_path = output_path.with_suffix(f".{image_format}")
    return output_path.resolve(), image_format


def write_image(image, output_path: Path, image_format: str) -> None:
    """Write ``image`` to ``output_path`` using the provided format."""

    pil_format = _pil_format_name(image_format)
    if pil_format == "JPEG":
        image = image.convert("RGB")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output_path), format=pil_format)


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    global VERBOSE
    VERBOSE = bool(opt.verbose)
    logging.basicConfig(
        level=logging.DEBUG if VERBOSE else logging.WARNING,
        format="%(asctime)s %(threadName)s %(name)s: %(message)s",
    )

    request = resolve_request(opt, parser)
    output_path, image_format = resolve_output(opt, parser)

    log("Request: %s" % request.to_query())
    log("Workers: %d, kernel: %s" % (request.resolved_workers(), opt.kernel))

    def progress(rows, total):
        print("rows {0} out of {1}".format(rows, total), end='\r')

    try:
        result = render_request(
            request,
            kernel=opt.kernel,
            timeout=opt.timeout,
            retry=opt.retry,
            progress=progress,
        )
    except MandelbrotError as exc:
        print()
        print(f"render failed: {exc}", file=sys.stderr)
        missing = getattr(exc, "missing_rows", ())
        if missing:
            print(f"{len(missing)} rows were never delivered", file=sys.stderr)
        return 1

    print()
    log("Rendered in %.3fs on %d units (%d retries)" % (result.elapsed, len(result.ranges), result.retries))

    write_image(result.to_image(), output_path, image_format)
    log("Wrote %s" % output_path)
    return 0


if __name__ == '__main__':
    sys.exit(main())
