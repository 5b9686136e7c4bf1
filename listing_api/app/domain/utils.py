"""
유틸리티 함수.

object_id/slug 도출 규칙은 이 모듈 한 곳에만 둔다.
Transformer(색인 문서 생성), 시트 레코드의 natural key, SearchService의 결과 매핑이
모두 같은 함수를 써야 동일 엔티티가 항상 같은 문서로 덮어써진다.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterable

_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")
_SHEET_NOISE = re.compile(r'[\[\]{}"]')


def slugify(text: str | None) -> str:
    """
    소문자화 후 영숫자가 아닌 문자 구간을 '-' 하나로 접고 양 끝 '-'를 제거한다.
    Args:
        text: str (이름/제목)
    Returns:
        str: URL-safe slug ("My Cool Tool!!" -> "my-cool-tool")
    """
    if not text:
        return ""
    return _NON_ALNUM_RUN.sub("-", text.lower()).strip("-")


def to_object_id(slug: str | None, name: str | None) -> str:
    """
    색인 문서의 object_id를 도출하는 함수.
    slug가 있으면 slug, 없으면 slugify(name).
    Args:
        slug: str | None
        name: str | None
    Returns:
        str: object_id (둘 다 비어 있으면 "")
    """
    if slug and slug.strip():
        return slug.strip()
    return slugify(name)


def normalize_array_field(value: Any) -> list[str]:
    """
    시트 셀 값을 문자열 리스트로 정규화하는 함수.
    - list: 각 원소를 문자열로
    - JSON 배열 문자열: 파싱
    - 그 외 문자열: 괄호/따옴표 제거 후 콤마 분리
    Args:
        value: Any
    Returns:
        list[str]
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return []
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return [str(v).strip() for v in parsed if v is not None and str(v).strip()]
        return [s.strip() for s in _SHEET_NOISE.sub("", raw).split(",") if s.strip()]
    return []


def join_searchable(parts: Iterable[Any]) -> str:
    """문자열/리스트가 섞인 값들을 공백으로 이어 붙인다(빈 값 제외)."""
    tokens: list[str] = []
    for part in parts:
        if part is None:
            continue
        if isinstance(part, (list, tuple)):
            tokens.extend(str(p).strip() for p in part if p is not None and str(p).strip())
        else:
            text = str(part).strip()
            if text:
                tokens.append(text)
    return " ".join(tokens)
