# Locate, rescale and re-render subtitle timestamps of the form H+:MM:SS,mmm

import collections
import logging
import re

from fractions import Fraction

log = logging.getLogger()

# Largest value a signed 64-bit millisecond count may hold.
max_ms = 2**63 - 1

timestamp_re = re.compile(
  r"(?P<hrs>\d+):(?P<mins>\d{2}):(?P<secs>\d{2}),(?P<msecs>\d{3})", re.ASCII
)

Timestamp = collections.namedtuple("Timestamp", "hours minutes seconds milliseconds")
TimestampMatch = collections.namedtuple("TimestampMatch", "start end timestamp width")


class TimestampOverflowError(OverflowError):
  """A timestamp does not fit a signed 64-bit millisecond count."""


def _fromre(m):
  try:
    hrs = int(m["hrs"])
  except ValueError:
    # More digits than int() converts; far past any 64-bit millisecond count.
    raise TimestampOverflowError(
      f"hours field of {len(m['hrs'])} digits exceeds {max_ms} milliseconds"
    ) from None
  return Timestamp(hrs, int(m["mins"]), int(m["secs"]), int(m["msecs"]))


def locate(text):
  """Yield a TimestampMatch for every timestamp in text, left to right, without overlaps."""

  for m in timestamp_re.finditer(text):
    yield TimestampMatch(m.start(), m.end(), _fromre(m), len(m["hrs"]))


class TimestampScan:
  """The timestamps of a document; each iteration scans again from the start."""

  def __init__(self, text):
    self.text = text

  def __iter__(self):
    return locate(self.text)

  def __len__(self):
    return sum(1 for _ in self)

  def __repr__(self):
    return f"TimestampScan({len(self.text)} chars)"


def parse_timestamp(s):
  """Interpret string which is exactly one timestamp."""

  if not (m := timestamp_re.fullmatch(s)):
    raise ValueError(f"{s!r} is not a timestamp")
  return _fromre(m)


def to_ms(ts):
  """Flatten timestamp into an absolute millisecond count."""

  ms = ((ts.hours * 60 + ts.minutes) * 60 + ts.seconds) * 1000 + ts.milliseconds
  if ms > max_ms:
    raise TimestampOverflowError(
      f"timestamp of more than {max_ms // 3600000} hours exceeds {max_ms} milliseconds"
    )
  return ms


def from_ms(ms):
  """Split a millisecond count into a timestamp; negative counts become zero."""

  ms = max(ms, 0)
  secs, msecs = divmod(ms, 1000)
  mins, secs = divmod(secs, 60)
  hrs, mins = divmod(mins, 60)
  return Timestamp(hrs, mins, secs, msecs)


def rescale_ratio(input_rate, output_rate):
  return Fraction(input_rate) / Fraction(output_rate)


def rescale(ts, ratio):
  """Multiply timestamp by ratio, rounding half away from zero to whole milliseconds."""

  ms = to_ms(ts)
  (n, d) = Fraction(ratio).as_integer_ratio()
  # Exact half-up rounding of ms*n/d; a negative product clamps to zero.
  scaled = (2 * ms * n + d) // (2 * d) if ms * n >= 0 else 0
  if scaled > max_ms:
    raise TimestampOverflowError(
      f"{render(ts)} scaled by {ratio} exceeds {max_ms} milliseconds"
    )
  return from_ms(scaled)


def render(ts, width=2):
  """Format timestamp as HH:MM:SS,mmm with hours padded to at least width digits."""

  return f"{ts.hours:0{max(width, 2)}d}:{ts.minutes:02d}:{ts.seconds:02d},{ts.milliseconds:03d}"


def retime(text, ratio):
  """Rescale every timestamp in text by ratio; return the new text and the number of timestamps."""

  out = []
  pos = 0
  count = 0
  for m in locate(text):
    out.append(text[pos : m.start])
    nts = rescale(m.timestamp, ratio)
    out.append(render(nts, m.width))
    log.debug(f"{text[m.start:m.end]} => {out[-1]}")
    pos = m.end
    count += 1
  out.append(text[pos:])
  return "".join(out), count
