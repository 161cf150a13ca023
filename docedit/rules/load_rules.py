from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence
from pathlib import Path
import yaml

from docedit.policy import (
    StyleRules, SceneMeta, SceneBlock, Outline,
    DEFAULT_ADVERB_EXCEPTIONS, DEFAULT_CLICHES, DEFAULT_MAX_PARAGRAPH_LENGTH,
)

DEFAULT_RULE_PACK = str(Path(__file__).parent / "style_rules.yml")


def load_rule_pack(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _str_list(value: Any) -> List[str]:
    return [str(v).strip() for v in (value or []) if isinstance(v, (str, int)) and str(v).strip()]


def load_style_rules(rule_pack: Dict[str, Any]) -> StyleRules:
    style = rule_pack.get("style") or rule_pack
    return StyleRules(
        rules=_str_list(style.get("rules")),
        banlist=_str_list(style.get("banlist")),
        preferences=_str_list(style.get("preferences")),
        max_paragraph_length=int(style.get("max_paragraph_length") or DEFAULT_MAX_PARAGRAPH_LENGTH),
        adverb_exceptions=_str_list(style.get("adverb_exceptions")) or list(DEFAULT_ADVERB_EXCEPTIONS),
        cliches=_str_list(style.get("cliches")) or list(DEFAULT_CLICHES),
    )


def default_style_rules() -> StyleRules:
    return load_style_rules(load_rule_pack(DEFAULT_RULE_PACK))


def load_scene_meta(path: str, blocks: Optional[Sequence] = None) -> SceneMeta:
    """
    Load scene metadata from YAML. When the file lists no blocks, the
    snapshot is taken from `blocks` (usually the document being edited).
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return scene_meta_from_dict(data, blocks)


def scene_meta_from_dict(data: Dict[str, Any], blocks: Optional[Sequence] = None) -> SceneMeta:
    outline = None
    o = data.get("outline")
    if isinstance(o, dict):
        outline = Outline(
            required_beats=_str_list(o.get("required_beats") or o.get("requiredBeats")),
            goal=o.get("goal"),
            conflict=o.get("conflict"),
            outcome=o.get("outcome"),
            clock=o.get("clock"),
            crucible=o.get("crucible"),
        )
    scene_blocks: List[SceneBlock] = []
    for b in data.get("blocks") or []:
        if isinstance(b, dict) and "id" in b:
            scene_blocks.append(SceneBlock(
                id=str(b["id"]),
                text=str(b.get("text", "")),
                hash=str(b.get("hash", "")),
                markers=_str_list(b.get("markers")),
            ))
    if not scene_blocks and blocks is not None:
        scene_blocks = [SceneBlock(id=b.id, text=b.text, hash=b.hash) for b in blocks]
    return SceneMeta(id=str(data.get("id", "")), outline=outline, blocks=scene_blocks)
