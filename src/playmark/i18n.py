"""User-facing strings keyed by locale."""

from __future__ import annotations

from functools import partial
from typing import Callable, Mapping

__all__ = ["LOCALES", "available_locales", "translate", "translator"]

_EN: Mapping[str, str] = {
    "BUTTON_FORMAT": "Format",
    "BUTTON_RUN": "Run",
    "BUTTON_SHARE": "Share",
    "NOTICE_NO_FORMATTABLE_BLOCK": "No formattable Go code block found.",
    "NOTICE_NO_RUNNABLE_BLOCK": "No runnable Go code block found.",
    "NOTICE_NO_SHAREABLE_BLOCK": "No shareable Go code block found.",
    "NOTICE_NO_COPYABLE_BLOCK": "No copyable Go code block found.",
    "NOTICE_FORMAT_DONE": "Code block formatted.",
    "NOTICE_RUN_DONE": "Run result updated.",
    "NOTICE_SHARE_COPIED": "Share link copied to clipboard.",
    "NOTICE_SHARE_READY": "Share link created.",
    "NOTICE_COPY_SUCCESS": "Code block copied to clipboard.",
    "NOTICE_INSERT_DONE": "Snippet inserted.",
    "NOTICE_TOO_FAST": "Please wait for the previous action to finish.",
    "NOTICE_BAD_SNIPPET": "Unable to parse snippet id.",
    "NOTICE_BLOCK_CHANGED": "The code block changed while the request was running.",
    "ERROR_FORMAT_FAILED": "Format failed.",
    "ERROR_RUN_FAILED": "Run failed.",
    "ERROR_SHARE_FAILED": "Share failed.",
    "ERROR_COPY_FAILED": "Copy failed.",
    "ERROR_INSERT_FAILED": "Insert failed.",
}

_ZH_CN: Mapping[str, str] = {
    "BUTTON_FORMAT": "格式化",
    "BUTTON_RUN": "运行",
    "BUTTON_SHARE": "分享",
    "NOTICE_NO_FORMATTABLE_BLOCK": "未发现可格式化的 Go 代码块。",
    "NOTICE_NO_RUNNABLE_BLOCK": "未发现可运行的 Go 代码块。",
    "NOTICE_NO_SHAREABLE_BLOCK": "未发现可分享的 Go 代码块。",
    "NOTICE_NO_COPYABLE_BLOCK": "未发现可复制的 Go 代码块。",
    "NOTICE_FORMAT_DONE": "代码块已格式化。",
    "NOTICE_RUN_DONE": "运行结果已更新。",
    "NOTICE_SHARE_COPIED": "分享链接已复制到剪贴板。",
    "NOTICE_SHARE_READY": "分享链接已生成。",
    "NOTICE_COPY_SUCCESS": "代码块已复制到剪贴板。",
    "NOTICE_INSERT_DONE": "代码已插入。",
    "NOTICE_TOO_FAST": "操作过快，请稍后再试。",
    "NOTICE_BAD_SNIPPET": "无法解析 snippet id。",
    "NOTICE_BLOCK_CHANGED": "请求期间代码块已被修改。",
    "ERROR_FORMAT_FAILED": "格式化失败。",
    "ERROR_RUN_FAILED": "运行失败。",
    "ERROR_SHARE_FAILED": "分享失败。",
    "ERROR_COPY_FAILED": "复制失败。",
    "ERROR_INSERT_FAILED": "插入失败。",
}

_ZH_TW: Mapping[str, str] = {
    "BUTTON_FORMAT": "格式化",
    "BUTTON_RUN": "執行",
    "BUTTON_SHARE": "分享",
    "NOTICE_NO_FORMATTABLE_BLOCK": "未發現可格式化的 Go 程式碼區塊。",
    "NOTICE_NO_RUNNABLE_BLOCK": "未發現可執行的 Go 程式碼區塊。",
    "NOTICE_NO_SHAREABLE_BLOCK": "未發現可分享的 Go 程式碼區塊。",
    "NOTICE_NO_COPYABLE_BLOCK": "未發現可複製的 Go 程式碼區塊。",
    "NOTICE_FORMAT_DONE": "程式碼區塊已格式化。",
    "NOTICE_RUN_DONE": "執行結果已更新。",
    "NOTICE_SHARE_COPIED": "分享連結已複製到剪貼簿。",
    "NOTICE_SHARE_READY": "分享連結已產生。",
    "NOTICE_COPY_SUCCESS": "程式碼區塊已複製到剪貼簿。",
    "NOTICE_INSERT_DONE": "程式碼已插入。",
    "NOTICE_TOO_FAST": "操作過快，請稍後再試。",
    "NOTICE_BAD_SNIPPET": "無法解析 snippet id。",
    "NOTICE_BLOCK_CHANGED": "請求期間程式碼區塊已被修改。",
    "ERROR_FORMAT_FAILED": "格式化失敗。",
    "ERROR_RUN_FAILED": "執行失敗。",
    "ERROR_SHARE_FAILED": "分享失敗。",
    "ERROR_COPY_FAILED": "複製失敗。",
    "ERROR_INSERT_FAILED": "插入失敗。",
}

LOCALES: Mapping[str, Mapping[str, str]] = {
    "en": _EN,
    "zh": _ZH_CN,
    "zh-cn": _ZH_CN,
    "zh-tw": _ZH_TW,
}


def available_locales() -> list[str]:
    return sorted(LOCALES)


def translate(key: str, locale: str | None = "en") -> str:
    """Resolve ``key`` for ``locale``, falling back to English and then the key."""

    strings = LOCALES.get((locale or "en").strip().lower(), _EN)
    return strings.get(key) or _EN.get(key, key)


def translator(locale: str | None) -> Callable[[str], str]:
    """Return a one-argument resolver bound to ``locale``."""

    return partial(translate, locale=locale)
