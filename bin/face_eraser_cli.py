#!/usr/bin/env python
"""
Command-line interface for the face eraser.

This script provides a CLI wrapper around the run_face_eraser function, allowing the
main parameters to be controlled via command-line arguments.

Examples:
    # Run with default settings (camera 0, sine voices)

    # Voices with a bit of vibrato
    python face_eraser_cli.py --synth vibrato
    python face_eraser_cli.py

    # Run silently, on another camera
    python face_eraser_cli.py --camera-index 1 --no-sound

    # Log what each slot's nose is doing
    python face_eraser_cli.py --log-pose-features

    # Save the sound to a file
    python face_eraser_cli.py --save-recording my_session.wav

    # Bigger eraser, less jitter-tolerant
    python face_eraser_cli.py --eraser-size 60 --min-speed 5
"""

from faceeraser.script_utils import dispatched_face_eraser_cli

if __name__ == "__main__":
    dispatched_face_eraser_cli()
