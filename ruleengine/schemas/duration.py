"""
时长编解码模块 (Duration Codec Module)

对外表示：输出始终为可读的时长字符串（如 "5m0s"、"1m30s"、"500ms"）；
输入既接受数值（按纳秒解释），也接受可解析的时长字符串（如 "1h30m"、"1.5s"）。
其他形状或无法解析的字符串一律抛出 InvalidDurationError，不做默认值回退。

External representation: always a human duration string on output; on input
either a number of nanoseconds or a parseable duration string. Any other shape
fails closed with InvalidDurationError.
"""
import math
import re
from datetime import timedelta
from typing import Annotated

from pydantic import BeforeValidator, PlainSerializer

from ruleengine.core.exceptions import InvalidDurationError

NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE

_UNITS = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "µs": MICROSECOND,  # U+00B5 micro sign
    "μs": MICROSECOND,  # U+03BC greek mu
    "ms": MILLISECOND,
    "s": SECOND,
    "m": MINUTE,
    "h": HOUR,
}

_COMPONENT = re.compile(r"(\d*)(?:\.(\d*))?(ns|us|µs|μs|ms|s|m|h)")


def to_nanoseconds(value: timedelta) -> int:
    return (value.days * 86400 + value.seconds) * SECOND + value.microseconds * MICROSECOND


def from_nanoseconds(ns: int) -> timedelta:
    # timedelta 精度为微秒，不足一微秒的部分被截断
    seconds, rem = divmod(ns, SECOND)
    return timedelta(seconds=seconds, microseconds=rem // MICROSECOND)


def _fmt_frac(v: int, prec: int) -> tuple[int, str]:
    """拆分出 prec 位小数，去掉末尾的 0；小数部分为 0 时省略小数点。"""
    if prec == 0:
        return v, ""
    whole, frac = divmod(v, 10 ** prec)
    digits = f"{frac:0{prec}d}".rstrip("0")
    return whole, ("." + digits) if digits else ""


def encode_duration(value: timedelta) -> str:
    """将时长编码为 "72h3m0.5s" 形式的字符串。"""
    ns = to_nanoseconds(value)
    sign = "-" if ns < 0 else ""
    u = abs(ns)

    if u < SECOND:
        # 小于一秒时使用更小的单位，如 1.2ms
        if u == 0:
            return "0s"
        if u < MICROSECOND:
            unit, prec = "ns", 0
        elif u < MILLISECOND:
            unit, prec = "µs", 3
        else:
            unit, prec = "ms", 6
        whole, frac = _fmt_frac(u, prec)
        return f"{sign}{whole}{frac}{unit}"

    seconds, frac = _fmt_frac(u, 9)
    text = f"{seconds % 60}{frac}s"
    minutes = seconds // 60
    if minutes > 0:
        text = f"{minutes % 60}m{text}"
        hours = minutes // 60
        if hours > 0:
            text = f"{hours}h{text}"
    return sign + text


def parse_duration(text: str) -> timedelta:
    """解析 "300ms"、"-1.5h"、"2h45m" 等时长字符串。"""
    s = text
    negative = False
    if s and s[0] in "+-":
        negative = s[0] == "-"
        s = s[1:]
    if s == "0":
        return timedelta(0)
    if not s:
        raise InvalidDurationError(f"invalid duration {text!r}")

    total = 0
    pos = 0
    while pos < len(s):
        match = _COMPONENT.match(s, pos)
        if match is None:
            raise InvalidDurationError(f"invalid duration {text!r}")
        whole, frac, unit = match.groups()
        if not whole and not frac:
            raise InvalidDurationError(f"invalid duration {text!r}")
        scale = _UNITS[unit]
        total += int(whole or 0) * scale
        if frac:
            total += int(frac) * scale // 10 ** len(frac)
        pos = match.end()

    try:
        return from_nanoseconds(-total if negative else total)
    except OverflowError:
        raise InvalidDurationError(f"duration {text!r} out of range") from None


def decode_duration(value) -> timedelta:
    """从外部表示解码时长：数值按纳秒解释，字符串按时长语法解析。"""
    if isinstance(value, timedelta):
        return value
    # bool 是 int 的子类，需要单独排除
    if isinstance(value, bool):
        raise InvalidDurationError(f"unsupported duration value {value!r}")
    if isinstance(value, (int, float)):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            raise InvalidDurationError(f"unsupported duration value {value!r}")
        try:
            return from_nanoseconds(int(value))
        except OverflowError:
            raise InvalidDurationError(f"duration {value!r} out of range") from None
    if isinstance(value, str):
        return parse_duration(value)
    raise InvalidDurationError(f"unsupported duration value {value!r}")


# Pydantic 字段类型：读入时解码，序列化时输出字符串
Duration = Annotated[
    timedelta,
    BeforeValidator(decode_duration),
    PlainSerializer(encode_duration, return_type=str),
]
