# primotape

Command-line tools and a small library for Microkey Primo tape images.

## Installation

    pip install .

## Commands

Each command prints its usage and exits with status 1 when `-h`, `-?`
or an unknown option is given, or when a required file is missing.
Malformed input also gives status 1; a file that cannot be opened or
created gives status 4.

### pp2ptp

Turns a `.pp` memory dump (load address, start address, then the bytes)
into a `.ptp` tape image with a name record, machine-code records of up
to 256 bytes and an autostart record:

    pp2ptp -i game.pp [-o out.ptp | -o outdir] [-n NAME] [-v]

Without `-o`, or when `-o` names a directory, the image is written there
as `<basename>.ptp`. The name used for loading defaults to the input's
base name; at most 16 characters are kept. `-v` reports every record
written.

### ptp2c

Writes the machine code of a `.ptp` file as a C structure initialiser:

    ptp2c -i game.ptp [-o game.c] [-n var_name] [-N] [-v]

The variable is called `ptp_content` unless `-n` is given; `-N` drops the
`const` qualifier. Output goes to standard output when there is no `-o`.
Only name, machine-code and autostart records are accepted, and the
machine-code records must follow each other in memory without a gap.

### ptp2pri

Converts a `.ptp` file to the `.pri` (`.prg`) block format:

    ptp2pri -i game.ptp -o game.pri [-v]

BASIC program, screen and machine-code records become `D1`, `D5` and
`D9` blocks; name, BASIC data and plain close records are dropped. The
file ends with a jump to the autostart address, or with a return when
there is none.

### ptp2turbo

Builds an 8-bit mono WAV file (54000 Hz) that first loads a turbo loader
at normal speed, then streams the payload at turbo speed:

    ptp2turbo -i game.ptp -o game.wav [-a] [-v]

The loader is moved above the payload when the payload reaches into its
memory; the command fails if the two would overlap or there is no room
left. With `-a`, a BASIC program is started with `RUN` once loaded.
Next-line addresses of BASIC programs are repaired while reading.

### ptp2turbo5

The same for Primo machines running at 2.5 MHz, with a faster encoding
(62000 Hz) and a checksum after every block:

    ptp2turbo5 -i game.ptp -o game.wav [-a] [-m 0xC000] [-v]

`-m ADDR` moves the loader to a given address (`0x` prefix for
hexadecimal, leading `0` for octal). `-v` lists the payload blocks; a
second `-v` reports every record read.

## Library

    from primotape.pp2ptp import pp_to_ptp
    from primotape.ptp2c import read_ptp_image, render_c_source
    from primotape.ptp2pri import ptp_to_pri
    from primotape.payload import load_payload
    from primotape.turbo import build_turbo_wav
    from primotape.turbo5 import build_turbo5_wav

    with open("game.pp", "rb") as handle:
        ptp = pp_to_ptp(handle.read(), "GAME")
    print(render_c_source(read_ptp_image(ptp), "game", True, True))
    pri = ptp_to_pri(ptp)

    payload = load_payload(ptp)
    with open("game.wav", "wb") as handle:
        handle.write(build_turbo_wav(payload, False))

Other pieces:

- `primotape.basic` decodes tokenised BASIC lines (`decode_basic_line`,
  `decode_token`) and rewrites next-line addresses in place
  (`check_load_addresses`).
- `primotape.tapewav.WavWriter` writes samples, normal-speed bytes and
  records, and renders the WAV file with `getvalue()`.
- `primotape.loaders` holds the two turbo loader programs
  (`turbo_loader()`, `turbo5_loader()`).
- `primotape.paths` has the file-name helpers the commands use.

Malformed input raises `PpFormatError` (from `primotape.pp2ptp`) or
`PtpFormatError` (from `primotape.ptp2c`). A loader that cannot be placed
raises `LoaderPlacementError` (from `primotape.turbo`).

## What it does not do

The package only writes tape signals; it does not read WAV files back
into tape images. It has no command for normal-speed WAV output, for
listing BASIC programs as text, or for dumping or describing the blocks
of a `.ptp` file, although `primotape.basic` can decode single BASIC
lines.