"""
注入頁面執行的 JavaScript

這些腳本透過 page.evaluate() 在瀏覽器內執行，不在 Python 端處理 DOM。
"""

VISIBLE_ELEMENTS_LIMIT = 100
ELEMENT_TEXT_MAX_CHARS = 100

INTERACTIVE_SELECTORS = 'a, button, input, select, textarea, [role="button"], [onclick]'

# 參數: { selectors, limit, maxText }
# selector 優先順序: #id → tag.firstClass（全文件唯一）→ tag:nth-of-type(k)
VISIBLE_ELEMENTS_JS = """
({ selectors, limit, maxText }) => {
  const isVisible = (el) => {
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);
    return rect.width > 0 && rect.height > 0 &&
      style.visibility !== 'hidden' && style.display !== 'none';
  };

  const nthOfType = (el, tag) => {
    const parent = el.parentElement;
    const peers = parent
      ? Array.from(parent.children).filter((c) => c.tagName.toLowerCase() === tag)
      : Array.from(document.getElementsByTagName(tag));
    return `${tag}:nth-of-type(${peers.indexOf(el) + 1})`;
  };

  const buildSelector = (el, tag, id, classes) => {
    if (id) {
      return `#${id}`;
    }
    if (classes && classes.length > 0) {
      const classSelector = `${tag}.${CSS.escape(classes[0])}`;
      if (document.querySelectorAll(classSelector).length === 1) {
        return classSelector;
      }
    }
    return nthOfType(el, tag);
  };

  return Array.from(document.querySelectorAll(selectors))
    .filter(isVisible)
    .slice(0, limit)
    .map((el) => {
      const tag = el.tagName.toLowerCase();
      const id = el.id || undefined;
      // SVG 元素的 className 不是字串，統一用 classList
      const classes = el.classList && el.classList.length > 0 ? Array.from(el.classList) : undefined;
      const text = (el.textContent || '').trim().substring(0, maxText);
      const href = el.href && typeof el.href === 'string' ? el.href : undefined;
      return { tag, text, id, classes, href, selector: buildSelector(el, tag, id, classes) };
    });
}
"""

VISIBLE_TEXT_JS = "() => document.body ? document.body.innerText : ''"
