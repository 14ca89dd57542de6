#!/usr/bin/env python3
"""Generate a synthetic test clip for audiocut export and playback checks.

Produces a 10-second stereo WAV with tone and silence sections:
  0-2s   440 Hz tone
  2-5s   880 Hz tone
  5-7s   silence
  7-10s  660 Hz tone
"""

import subprocess
import sys
from pathlib import Path


def generate_test_audio(output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)

    audio_filter = (
        "sine=f=440:d=2[a0];"
        "sine=f=880:d=3[a1];"
        "anullsrc=r=44100:cl=mono:d=2[s0];"
        "sine=f=660:d=3[a2];"
        "[a0][a1][s0][a2]concat=n=4:v=0:a=1,aformat=channel_layouts=stereo[aout]"
    )

    cmd = [
        "ffmpeg", "-y",
        "-filter_complex", audio_filter,
        "-map", "[aout]",
        "-ar", "44100",
        "-c:a", "pcm_s16le",
        str(output),
    ]
    subprocess.run(cmd, check=True)
    print(f"Generated: {output}")


if __name__ == "__main__":
    out = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("tests/fixtures/synthetic.wav")
    generate_test_audio(out)
