"""
Diff utilities for the record editor.

Compares the last saved schema or records document with the in-memory one
using DeepDiff, so the editor can show unsaved changes before a save.
Record and row order is significant, so lists are compared in order.
"""

from typing import Any, Dict, List
from deepdiff import DeepDiff
import json
import re
import logging

logger = logging.getLogger(__name__)

CHANGE_TYPES = (
    'values_changed',
    'dictionary_item_added',
    'dictionary_item_removed',
    'iterable_item_added',
    'iterable_item_removed',
    'type_changes'
)

_PATH_TOKEN_PATTERN = re.compile(r"\['([^']+)'\]|\[(\d+)\]")


def calculate_diff(original: Any, modified: Any) -> Dict[str, Dict[str, Any]]:
    """
    Calculate differences between two documents.

    Args:
        original: Last saved document
        modified: Current in-memory document

    Returns:
        Dict keyed by change type; each value maps a DeepDiff path to the
        change details (old/new value for changes, the value for additions
        and removals). Empty when the documents are equal.
    """
    try:
        diff = DeepDiff(original, modified, ignore_order=False, verbose_level=2)
    except Exception as e:
        logger.error(f"Error calculating diff: {e}", exc_info=True)
        return {}

    processed: Dict[str, Dict[str, Any]] = {}
    for change_type in CHANGE_TYPES:
        section = diff.get(change_type)
        if not section:
            continue
        if isinstance(section, dict):
            processed[change_type] = dict(section)
        else:
            processed[change_type] = {str(path): None for path in section}
    return processed


def has_changes(diff: Dict[str, Any]) -> bool:
    """
    Check if there are any changes in the diff.

    Args:
        diff: Diff dictionary from calculate_diff

    Returns:
        True if there are changes, False otherwise
    """
    if not diff:
        return False
    return any(diff.get(change_type) for change_type in CHANGE_TYPES)


def get_change_summary(diff: Dict[str, Any]) -> Dict[str, int]:
    """
    Get a summary of changes by type.

    Args:
        diff: Diff dictionary from calculate_diff

    Returns:
        Dictionary with change counts by type
    """
    summary = {
        'modified': len(diff.get('values_changed', {})),
        'added': len(diff.get('dictionary_item_added', {})) + len(diff.get('iterable_item_added', {})),
        'removed': len(diff.get('dictionary_item_removed', {})) + len(diff.get('iterable_item_removed', {})),
        'type_changed': len(diff.get('type_changes', {})),
    }
    summary['total'] = sum(summary.values())
    return summary


def format_diff_for_display(diff: Dict[str, Any]) -> List[str]:
    """
    Format a diff as readable lines, one per change.

    Args:
        diff: Diff dictionary from calculate_diff

    Returns:
        List of lines such as "Modified: tvSwitching/manufacturer[0] → name: 'A' → 'B'"
    """
    lines: List[str] = []

    for path, change in diff.get('values_changed', {}).items():
        old_value = _format_value(change.get('old_value')) if isinstance(change, dict) else ''
        new_value = _format_value(change.get('new_value')) if isinstance(change, dict) else ''
        lines.append(f"Modified: {_clean_path(path)}: {old_value} → {new_value}")

    for path, change in diff.get('type_changes', {}).items():
        old_value = _format_value(change.get('old_value')) if isinstance(change, dict) else ''
        new_value = _format_value(change.get('new_value')) if isinstance(change, dict) else ''
        lines.append(f"Type changed: {_clean_path(path)}: {old_value} → {new_value}")

    for section in ('dictionary_item_added', 'iterable_item_added'):
        for path, value in diff.get(section, {}).items():
            lines.append(f"Added: {_clean_path(path)} = {_format_value(value)}")

    for section in ('dictionary_item_removed', 'iterable_item_removed'):
        for path, value in diff.get(section, {}).items():
            lines.append(f"Removed: {_clean_path(path)} (was {_format_value(value)})")

    return lines


def _clean_path(path: Any) -> str:
    """
    Turn a DeepDiff path like root['a/b'][0]['name'] into a display path.

    Args:
        path: Raw path from DeepDiff

    Returns:
        Cleaned path string, e.g. "a/b[0] → name"
    """
    parts: List[str] = []
    for key, index in _PATH_TOKEN_PATTERN.findall(str(path)):
        if key:
            parts.append(key)
        elif parts:
            parts[-1] += f"[{index}]"
        else:
            parts.append(f"[{index}]")
    return " → ".join(parts) if parts else "root"


def _format_value(value: Any, max_length: int = 80) -> str:
    """
    Format a value for display, truncating if necessary.

    Args:
        value: Value to format
        max_length: Maximum length for display

    Returns:
        Formatted string
    """
    if isinstance(value, (dict, list)):
        text = json.dumps(value, ensure_ascii=False)
    else:
        text = repr(value)
    if len(text) > max_length:
        return f"{text[:max_length - 3]}..."
    return text
