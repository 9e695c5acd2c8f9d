#!/usr/bin/python3

prog = "srtfps"
version = "0.3"
author = "Carl Edman (CarlEdman@gmail.com)"
desc = "Retime subtitle files from one video frame rate to another."

import argparse
import collections
import logging
import pathlib
import sys

import yaml

from fpstools import (
  cfgload,
  list_rates,
  rate_arg,
  rate_string,
  read_text,
  replace_atomic,
  setup_logging,
  to_rate,
)
from srttime import TimestampOverflowError, locate, rescale_ratio, retime, to_ms

log = logging.getLogger()

default_rate = to_rate("29.97")
default_output = pathlib.Path("output.srt")

RetimeConfig = collections.namedtuple(
  "RetimeConfig", "infile outfile input_fps output_fps dryrun"
)

cfgkeys = {
  "input_fps": to_rate,
  "output_fps": to_rate,
  "output": pathlib.Path,
}


def make_parser():
  parser = argparse.ArgumentParser(
    fromfile_prefix_chars="@", prog=prog, description=desc, epilog="Written by: " + author
  )
  parser.add_argument("--version", action="version", version="%(prog)s " + version)
  parser.add_argument(
    "-if", "--input-fps",
    dest="input_fps",
    type=rate_arg,
    metavar="RATE",
    help="frame rate the subtitles were timed for (default: 29.97); accepts 23.976, 24000/1001 or 24000:1001",
  )
  parser.add_argument(
    "-of", "--output-fps",
    dest="output_fps",
    type=rate_arg,
    metavar="RATE",
    help="frame rate of the target video (default: 29.97)",
  )
  parser.add_argument(
    "-i", "--input",
    dest="infile",
    type=pathlib.Path,
    help="subtitle file to be retimed",
  )
  parser.add_argument(
    "-o", "--output",
    dest="outfile",
    type=pathlib.Path,
    help=f"retimed subtitle file to be written (default: {default_output})",
  )
  parser.add_argument(
    "-c", "--config",
    dest="config",
    type=pathlib.Path,
    help="YAML or JSON file supplying input_fps, output_fps and output defaults",
  )
  parser.add_argument(
    "--list-rates",
    dest="listrates",
    action="store_true",
    help="print common video frame rates and exit",
  )
  parser.add_argument(
    "--dryrun", "--dry-run",
    dest="dryrun",
    action="store_true",
    help="do not write the output file, but only report what would be done.",
  )
  parser.add_argument(
    "-v", "--verbose",
    dest="loglevel",
    action="store_const",
    const=logging.INFO,
    help="print informational (or higher) log messages.",
  )
  parser.add_argument(
    "-d", "--debug",
    dest="loglevel",
    action="store_const",
    const=logging.DEBUG,
    help="print debugging (or higher) log messages.",
  )
  parser.add_argument(
    "--taciturn",
    dest="loglevel",
    action="store_const",
    const=logging.ERROR,
    help="only print error level (or higher) log messages.",
  )
  parser.add_argument("-l", "--log", dest="logfile", action="store", help="also log everything to this file")
  parser.set_defaults(loglevel=logging.WARN)
  return parser


def resolve_config(parser, args):
  """Combine command line, config file and defaults (in that order of precedence) into a RetimeConfig."""

  if not args.infile:
    parser.error("the following arguments are required: -i/--input")

  filecfg = {}
  if args.config:
    try:
      raw = cfgload(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
      parser.error(f'config file "{args.config}": {e}')
    for k, v in raw.items():
      if k not in cfgkeys:
        log.warning(f'Unknown setting "{k}" in "{args.config}", ignoring.')
        continue
      try:
        filecfg[k] = cfgkeys[k](v)
      except (TypeError, ValueError) as e:
        parser.error(f'config file "{args.config}", setting "{k}": {e}')

  outfile = args.outfile or filecfg.get("output", default_output)
  if not outfile.name:
    parser.error(f'output "{outfile}" is not a file name')

  return RetimeConfig(
    infile=args.infile,
    outfile=outfile,
    input_fps=args.input_fps or filecfg.get("input_fps", default_rate),
    output_fps=args.output_fps or filecfg.get("output_fps", default_rate),
    dryrun=args.dryrun,
  )


def span(text):
  """First and last timestamp text in a document and the minutes between them, or None if it has none."""

  first = last = None
  for m in locate(text):
    if first is None:
      first = m
    last = m
  if first is None:
    return None
  mins = (to_ms(last.timestamp) - to_ms(first.timestamp)) / 60000.0
  return (text[first.start : first.end], text[last.start : last.end], mins)


def retime_file(cfg):
  """Read, retime and (unless a dry run) write; return the number of timestamps converted."""

  ratio = rescale_ratio(cfg.input_fps, cfg.output_fps)
  log.info(
    f'Retiming "{cfg.infile}" from {rate_string(cfg.input_fps)} fps to {rate_string(cfg.output_fps)} fps (ratio {ratio})'
  )
  if ratio == 1:
    log.info("Source and target frame rates are the same. No conversion needed.")

  text = read_text(cfg.infile)
  out, count = retime(text, ratio)

  if count == 0:
    log.warning(f'No timestamps found in "{cfg.infile}", copying unchanged.')
  else:
    (ofirst, olast, omins) = span(text)
    (nfirst, nlast, nmins) = span(out)
    log.info(
      f"{count} timestamps: {ofirst} .. {olast} ({omins:.1f} min) => {nfirst} .. {nlast} ({nmins:.1f} min)"
    )

  if cfg.dryrun:
    log.info(f'Would write "{cfg.outfile}"')
    return count

  try:
    replace_atomic(cfg.outfile, out)
  except OSError as e:
    raise OSError(e.errno, e.strerror, str(cfg.outfile)) from e
  log.info(f'Wrote "{cfg.outfile}"')
  return count


def main(argv=None):
  if argv is None:
    argv = sys.argv[1:]
    inifile = pathlib.Path(sys.argv[0]).with_suffix(".ini")
    if inifile.exists():
      argv.insert(0, f"@{inifile}")

  parser = make_parser()
  args = parser.parse_args(argv)
  if args.dryrun and args.loglevel > logging.INFO:
    args.loglevel = logging.INFO
  setup_logging(args.loglevel, args.logfile)

  if args.listrates:
    print("Common video frame rates:")
    print(list_rates())
    print()
    print("Note: The most common conversion is between 23.976/24fps (film) and 29.97fps (TV)")
    return 0

  cfg = resolve_config(parser, args)
  log.debug(f"{prog} {version}: {cfg}")

  try:
    retime_file(cfg)
  except TimestampOverflowError as e:
    log.error(f'Retiming "{cfg.infile}" failed: {e}')
    return 1
  except OSError as e:
    log.error(f"{e.strerror or e}: {e.filename or cfg.infile}")
    return 1

  return 0


def cli():
  sys.exit(main())


if __name__ == "__main__":
  cli()
