"""Entry point for `python -m stream_bouncer`."""

from .cli import main

main()
