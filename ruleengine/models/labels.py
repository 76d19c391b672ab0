"""
标签集合模块 (Label Set Module)

时间序列的标签集合是告警在规则内的身份标识。Labels 为不可变、按名称排序的键值对集合，
fingerprint() 生成稳定的 64 位哈希，作为规则活动告警表的键。

A time series label set is an alert's identity within a rule. Labels is an
immutable, name-sorted set of pairs; fingerprint() yields a stable 64-bit hash
used as the key of a rule's active alert table.
"""
import hashlib
from typing import Iterator, Mapping, Optional

# 规则引擎保留的标签名 (Reserved label names)
ALERT_NAME_LABEL = "alertname"
RULE_ID_LABEL = "ruleId"
RULE_SOURCE_LABEL = "ruleSource"

_SEP = b"\xff"


class Labels(Mapping[str, str]):
    __slots__ = ("_pairs",)

    def __init__(self, labels: Optional[Mapping[str, str]] = None):
        items = labels.items() if labels else ()
        self._pairs = tuple(sorted((str(k), str(v)) for k, v in items))

    def __getitem__(self, name: str) -> str:
        for k, v in self._pairs:
            if k == name:
                return v
        raise KeyError(name)

    def __iter__(self) -> Iterator[str]:
        return (k for k, _ in self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __eq__(self, other) -> bool:
        if isinstance(other, Labels):
            return self._pairs == other._pairs
        if isinstance(other, Mapping):
            return dict(self._pairs) == dict(other.items())
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._pairs)

    def __repr__(self) -> str:
        inner = ", ".join(f'{k}="{v}"' for k, v in self._pairs)
        return "{" + inner + "}"

    def with_labels(self, extra: Optional[Mapping[str, str]]) -> "Labels":
        """返回合并后的新标签集合，extra 中的同名标签覆盖原值。"""
        if not extra:
            return self
        merged = dict(self._pairs)
        merged.update(extra)
        return Labels(merged)

    def without(self, *names: str) -> "Labels":
        return Labels({k: v for k, v in self._pairs if k not in names})

    def to_dict(self) -> dict[str, str]:
        return dict(self._pairs)

    def fingerprint(self) -> int:
        """对排序后的键值对做 sha256，取前 8 字节作为指纹。"""
        digest = hashlib.sha256()
        for k, v in self._pairs:
            digest.update(k.encode())
            digest.update(_SEP)
            digest.update(v.encode())
            digest.update(_SEP)
        return int.from_bytes(digest.digest()[:8], "big")
