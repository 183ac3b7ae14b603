#!/usr/bin/env python3
"""Reverb — Freeverb impulse-response renderer."""

import logging

from reverb.audio.render import main as render_main

logging.basicConfig(level=logging.DEBUG, format="%(name)s %(levelname)s: %(message)s")


def main():
    render_main()


if __name__ == "__main__":
    main()
