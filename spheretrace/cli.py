import argparse
import logging

from spheretrace.common import IntersectionMode, Settings
from spheretrace.image_io import ImageWriteError

from spheretrace.cpu_rt import CpuApp
from spheretrace.jit_rt import JitApp

import matplotlib.pyplot as plt

logger = logging.getLogger("spheretrace")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Render a sphere scene to an image file")
    backend = parser.add_mutually_exclusive_group()
    backend.add_argument("--cpu", action="store_true", help="Pure Python renderer (default)")
    backend.add_argument("--jit", action="store_true", help="numba renderer, parallel over rows")

    parser.add_argument("--width", type=int, default=800, help="Image width")
    parser.add_argument("--height", type=int, default=600, help="Image height")
    parser.add_argument("--output", default="flight_paths.png", help="Output image file")
    parser.add_argument("--cull-behind", action="store_true", help="Ignore intersections behind the camera")
    parser.add_argument("--show", action="store_true", help="Display the image after saving")
    parser.add_argument("-v", "--verbose", action="store_true")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = Settings(
            width=args.width,
            height=args.height,
            output=args.output,
            backend="jit" if args.jit else "cpu",
            mode=IntersectionMode.VISIBLE if args.cull_behind else IntersectionMode.NEAR_ROOT,
        )
    except ValueError as e:
        parser.error(str(e))

    if settings.backend == "jit":
        app = JitApp(settings)
    else:
        app = CpuApp(settings)

    app.run()

    try:
        app.save()
    except ImageWriteError as e:
        logger.error(str(e))
        parser.exit(1)

    if args.show:
        plt.imshow(app.image)
        plt.show(block=True)


if __name__ == "__main__":
    main()
