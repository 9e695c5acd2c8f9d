# Various utility functions for frame rate retiming

import argparse
import json
import logging
import logging.handlers
import pathlib
import re

from fractions import Fraction

import coloredlogs
import yaml

log = logging.getLogger()

json_exts = set(["json", "cfg"])
yaml_exts = set(["yaml", "yml"])

logformat = "%(asctime)s %(levelname)s: %(message)s"

common_rates = {
  Fraction(24000, 1001): "Film (24fps slowed down for NTSC)",
  Fraction(24): "Cinema standard",
  Fraction(25): "PAL standard (Europe, Australia)",
  Fraction(30000, 1001): "NTSC standard (North America, Japan)",
  Fraction(30): "Some digital video",
  Fraction(50): "PAL high framerate",
  Fraction(60000, 1001): "NTSC high framerate",
  Fraction(60): "High framerate digital",
}


def to_rate(s):
  """Interpret argument as a positive frame rate: decimal, fraction (n/d) or ratio (n:d)."""

  if isinstance(s, (int, Fraction)):
    r = Fraction(s)
  elif isinstance(s, float):
    r = Fraction(str(s))
  else:
    s = str(s).strip()
    if m := re.fullmatch(r"(?P<num>\d+(\.\d*)?)\s*[/:]\s*(?P<den>\d+(\.\d*)?)", s):
      if Fraction(m["den"]) == 0:
        raise ValueError(f"frame rate {s!r} has a zero denominator")
      r = Fraction(m["num"]) / Fraction(m["den"])
    else:
      try:
        r = Fraction(s)
      except (ValueError, ZeroDivisionError):
        raise ValueError(f"frame rate {s!r} is not a number") from None

  if r <= 0:
    raise ValueError(f"frame rate {s!r} is not positive")
  return r


def rate_arg(s):
  """argparse type for frame rates."""

  try:
    return to_rate(s)
  except ValueError as e:
    raise argparse.ArgumentTypeError(str(e))


def to_ratio_string(f, sep="/"):
  """Return rate as a fraction."""

  (n, d) = Fraction(f).limit_denominator(10000).as_integer_ratio()
  return f"{n}{sep}{d}"


def rate_string(r):
  """Return rate in the customary three-decimal form, e.g. 29.970."""

  return f"{float(r):.3f}"


def list_rates():
  """Table of common frame rates, one per line."""

  return "\n".join(
    f"  {rate_string(r):>7} fps ({to_ratio_string(r):>10}) - {d}"
    for r, d in common_rates.items()
  )


def cfgload(fn):
  """Load a YAML or JSON config file into a dict, chosen by suffix."""

  fn = pathlib.Path(fn)
  with open(fn, "r", encoding="utf-8") as f:
    if fn.suffix[1:] in yaml_exts:
      cfg = yaml.safe_load(f)
    elif fn.suffix[1:] in json_exts:
      cfg = json.load(f)
    else:
      raise ValueError(f"{fn} is not a config file (expected one of {', '.join(sorted(yaml_exts | json_exts))})")
  if cfg is None:
    return {}
  if not isinstance(cfg, dict):
    raise ValueError(f"{fn} does not hold a mapping of settings")
  return cfg


def read_text(p):
  """Read file so that every byte, including line endings, survives a later write_text."""

  with open(p, "r", encoding="utf-8", errors="surrogateescape", newline="") as f:
    return f.read()


def replace_atomic(p, text):
  """Write text to a temporary sibling of p, then move it over p."""

  p = pathlib.Path(p)
  tempfile = p.with_name(p.name + ".tmp")
  try:
    with open(tempfile, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
      f.write(text)
    tempfile.replace(p)
  except OSError:
    tempfile.unlink(missing_ok=True)
    raise


def setup_logging(loglevel=logging.WARN, logfile=None):
  log.setLevel(0)

  if logfile:
    flogger = logging.handlers.WatchedFileHandler(logfile, "a", "utf-8")
    flogger.setLevel(logging.DEBUG)
    flogger.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s]: %(message)s"))
    log.addHandler(flogger)

  coloredlogs.install(level=loglevel, logger=log, fmt=logformat)
