"""Built-in edit rules and the ``build_edits`` entry point.

Each rule inspects an artifact's current content and proposes an
:class:`~site_autoenhance.domain.edits.EditPlan`.  Every rule is idempotent
under detection: it looks for the marker its own change leaves behind (or
for the text it would rewrite) and proposes nothing when the change is
already there.  Replacements are only proposed when their target occurs in
the content.

The snippet texts are intentionally small; what matters is the marker each
one carries.
"""

from __future__ import annotations

import logging
import re

from site_autoenhance.domain.edits import (
    EditOperation,
    EditPlan,
    Insertion,
    LiteralMatcher,
    RegexMatcher,
    Replacement,
    after,
    before,
    end_of,
)
from site_autoenhance.domain.enums import ArtifactType, Occurrence
from site_autoenhance.domain.values import ArtifactSpec, CategorySpec
from site_autoenhance.infrastructure.registry import RuleRegistry

logger = logging.getLogger(__name__)

_CSS = ArtifactType.STYLESHEET
_JS = ArtifactType.SCRIPT
_HTML = ArtifactType.MARKUP

# Built-in rules register themselves here; default_registry() hands out copies.
_BUILTIN_RULES = RuleRegistry()


def _plan(edits: list[EditOperation], descriptions: list[str]) -> EditPlan:
    if not edits:
        return EditPlan()
    return EditPlan(edits=tuple(edits), description="; ".join(descriptions))


# ===================================================================== #
#  Stylesheet rules                                                      #
# ===================================================================== #

SHINE_MARKER = "hover-shine"

_SHINE_CSS = """
/* ========== Shine effect on hover ========== */
.hover-shine,
.collection-item {
  position: relative;
  overflow: hidden;
}

.hover-shine::before,
.collection-item::before {
  content: '';
  position: absolute;
  top: 0;
  left: -75%;
  width: 50%;
  height: 100%;
  background: linear-gradient(to right, rgba(255,255,255,0) 0%, rgba(255,255,255,0.3) 100%);
  transform: skewX(-25deg);
}

.hover-shine:hover::before,
.collection-item:hover::before {
  animation: shine 1.5s;
}

@keyframes shine {
  100% { left: 125%; }
}
"""


@_BUILTIN_RULES.register(_CSS, "animation")
def css_animation(content: str) -> EditPlan:
    if SHINE_MARKER in content:
        return EditPlan()
    section = "/* Animations */"
    anchor = after(section) if section in content else end_of(content)
    return _plan(
        [Insertion(anchor, "\n" + _SHINE_CSS)],
        ["Added shine effect animation to collection items on hover"],
    )


XS_MEDIA_MARKER = "@media (max-width: 375px)"
_SMALL_MEDIA = "@media (max-width: 480px)"

_XS_MEDIA_CSS = XS_MEDIA_MARKER + """ {
  .hero h1 {
    font-size: 1.8rem;
  }
  .collection-grid {
    grid-template-columns: 1fr;
  }
  .section-header h2 {
    font-size: 1.4rem;
  }
}
"""


@_BUILTIN_RULES.register(_CSS, "responsiveness")
def css_responsiveness(content: str) -> EditPlan:
    if XS_MEDIA_MARKER in content:
        return EditPlan()
    if _SMALL_MEDIA in content:
        insertion = Insertion(before(_SMALL_MEDIA), _XS_MEDIA_CSS + "\n")
    else:
        insertion = Insertion(end_of(content), "\n" + _XS_MEDIA_CSS)
    return _plan(
        [insertion],
        ["Added responsive layout for extra small devices (375px and below)"],
    )


WILL_CHANGE_MARKER = "will-change:"

_HOVER_SELECTORS = (".gallery-item:hover img {", ".collection-item:hover {")


@_BUILTIN_RULES.register(_CSS, "performance")
def css_performance(content: str) -> EditPlan:
    if WILL_CHANGE_MARKER in content:
        return EditPlan()
    edits: list[EditOperation] = [
        Replacement(LiteralMatcher(selector), selector + "\n  will-change: transform;")
        for selector in _HOVER_SELECTORS
        if selector in content
    ]
    return _plan(edits, ["Added will-change hints to hover animations"])


TEXT_SHADOW_MARKER = "text-shadow"
_SECTION_HEADER = ".section-header h2 {"


@_BUILTIN_RULES.register(_CSS, "visual-appeal")
def css_visual_appeal(content: str) -> EditPlan:
    if TEXT_SHADOW_MARKER in content or _SECTION_HEADER not in content:
        return EditPlan()
    return _plan(
        [
            Replacement(
                LiteralMatcher(_SECTION_HEADER),
                _SECTION_HEADER + "\n  text-shadow: 0 2px 4px rgba(0, 0, 0, 0.1);",
            )
        ],
        ["Added subtle text shadow to section headers"],
    )


# ===================================================================== #
#  Script rules                                                          #
# ===================================================================== #

SCROLL_REVEAL_MARKER = "initScrollReveal"

_SCROLL_REVEAL_JS = """
// Scroll reveal animation
function initScrollReveal() {
  const items = document.querySelectorAll('.collection-item, .service-item');
  const observer = new IntersectionObserver(function (entries) {
    entries.forEach(function (entry) {
      if (entry.isIntersecting) {
        entry.target.classList.add('revealed');
        observer.unobserve(entry.target);
      }
    });
  }, { threshold: 0.15 });
  items.forEach(function (item) {
    item.classList.add('scroll-reveal');
    observer.observe(item);
  });
}

document.addEventListener('DOMContentLoaded', initScrollReveal);
"""


@_BUILTIN_RULES.register(_JS, "animation")
def js_animation(content: str) -> EditPlan:
    if SCROLL_REVEAL_MARKER in content or "AOS.init" in content:
        return EditPlan()
    return _plan(
        [Insertion(end_of(content), _SCROLL_REVEAL_JS)],
        ["Added scroll reveal animations to collection and service items"],
    )


RAF_MARKER = "rafThrottle"

_NAMED_SCROLL_LISTENER = RegexMatcher(
    r"addEventListener\(\s*(['\"])scroll\1\s*,\s*([A-Za-z_$][\w$]*)\s*\)",
    all_matches=True,
)

_RAF_THROTTLE_JS = """
// Run scroll handlers at most once per animation frame
function rafThrottle(handler) {
  let scheduled = false;
  return function (event) {
    if (scheduled) {
      return;
    }
    scheduled = true;
    requestAnimationFrame(function () {
      scheduled = false;
      handler(event);
    });
  };
}
"""


@_BUILTIN_RULES.register(_JS, "performance")
def js_performance(content: str) -> EditPlan:
    if RAF_MARKER in content or not _NAMED_SCROLL_LISTENER.found_in(content):
        return EditPlan()
    return _plan(
        [
            Insertion(end_of(content), _RAF_THROTTLE_JS),
            Replacement(
                _NAMED_SCROLL_LISTENER,
                r"addEventListener('scroll', rafThrottle(\2), { passive: true })",
            ),
        ],
        ["Throttled scroll handlers with requestAnimationFrame"],
    )


KEYBOARD_NAV_MARKER = "enhanceKeyboardNavigation"

_KEYBOARD_NAV_JS = """
// Keyboard navigation for gallery and collection items
function enhanceKeyboardNavigation() {
  document.querySelectorAll('.gallery-item, .collection-item, .btn').forEach(function (el) {
    if (!el.hasAttribute('tabindex')) {
      el.setAttribute('tabindex', '0');
    }
    el.addEventListener('keydown', function (e) {
      if (e.key === 'Enter') {
        e.preventDefault();
        el.click();
      }
    });
  });
}

document.addEventListener('DOMContentLoaded', enhanceKeyboardNavigation);
"""


@_BUILTIN_RULES.register(_JS, "accessibility")
def js_accessibility(content: str) -> EditPlan:
    if KEYBOARD_NAV_MARKER in content:
        return EditPlan()
    return _plan(
        [Insertion(end_of(content), _KEYBOARD_NAV_JS)],
        ["Added keyboard navigation support for interactive items"],
    )


ERROR_GUARD_MARKER = "site-error-guard"

_ERROR_GUARD_JS = """
// site-error-guard: keep one failing widget from breaking the page
window.addEventListener('error', function (event) {
  if (window.console) {
    console.warn('Recovered from script error:', event.message);
  }
});
"""

_UNGUARDED_LOOKUP = RegexMatcher(
    r"(document\.(?:querySelector|getElementById)\([^()]*\))\.addEventListener\(",
    all_matches=True,
)


@_BUILTIN_RULES.register(_JS, "error-fix")
def js_error_fix(content: str) -> EditPlan:
    edits: list[EditOperation] = []
    descriptions: list[str] = []
    if ERROR_GUARD_MARKER not in content:
        edits.append(Insertion(end_of(content), _ERROR_GUARD_JS))
        descriptions.append("Added global script error guard")
    if _UNGUARDED_LOOKUP.found_in(content):
        edits.append(Replacement(_UNGUARDED_LOOKUP, r"\1?.addEventListener("))
        descriptions.append("Guarded element lookups against missing nodes")
    return _plan(edits, descriptions)


# ===================================================================== #
#  Markup rules                                                          #
# ===================================================================== #

_IMG_WITHOUT_ALT = RegexMatcher(
    r'<img\s+src="([^"]+)"(?![^>]*\balt=)([^>]*)>',
    flags=re.IGNORECASE,
    all_matches=True,
)

_ICON_LINK_WITHOUT_LABEL = RegexMatcher(
    r'<a\s+(?![^>]*aria-label=)([^>]*href="[^"]*"[^>]*)>(\s*<i\b[^>]*>\s*</i>\s*)</a>',
    flags=re.IGNORECASE,
    all_matches=True,
)

_ICON_NAME = re.compile(r"\bfa-(?!solid\b|brands\b|regular\b)([a-z0-9-]+)")


def _alt_from_filename(match: re.Match) -> str:
    src, rest = match.group(1), match.group(2)
    stem = src.rsplit("/", 1)[-1].split(".", 1)[0]
    alt = re.sub(r"[-_]+", " ", stem).strip().title()
    return f'<img src="{src}" alt="{alt}"{rest}>'


def _label_from_icon(match: re.Match) -> str:
    attrs, icon = match.group(1), match.group(2)
    name = _ICON_NAME.search(icon)
    label = name.group(1).replace("-", " ").title() if name else "Link"
    return f'<a aria-label="{label}" {attrs}>{icon}</a>'


@_BUILTIN_RULES.register(_HTML, "accessibility")
def html_accessibility(content: str) -> EditPlan:
    edits: list[EditOperation] = []
    descriptions: list[str] = []
    if _IMG_WITHOUT_ALT.found_in(content):
        edits.append(Replacement(_IMG_WITHOUT_ALT, _alt_from_filename))
        descriptions.append("Added alt text to images")
    if _ICON_LINK_WITHOUT_LABEL.found_in(content):
        edits.append(Replacement(_ICON_LINK_WITHOUT_LABEL, _label_from_icon))
        descriptions.append("Added aria-labels to icon links")
    return _plan(edits, descriptions)


META_DESCRIPTION_MARKER = '<meta name="description"'
_META_DESCRIPTION = re.compile(r"""<meta\b[^>]*\bname\s*=\s*["']description["']""", re.IGNORECASE)

_TITLE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)


@_BUILTIN_RULES.register(_HTML, "seo")
def html_seo(content: str) -> EditPlan:
    if _META_DESCRIPTION.search(content) or "</head>" not in content:
        return EditPlan()
    m = _TITLE.search(content)
    title = " ".join(m.group(1).split()) if m else ""
    title = title.replace('"', "&quot;")
    tags = (
        f'    {META_DESCRIPTION_MARKER} content="{title}">\n'
        f'    <meta property="og:title" content="{title}">\n'
        '    <meta property="og:type" content="website">\n'
    )
    return _plan(
        [Insertion(before("</head>"), tags)],
        ["Added SEO meta tags for search engine visibility"],
    )


BACK_TO_TOP_MARKER = 'id="back-to-top"'

_BACK_TO_TOP_HTML = """    <!-- Back to top button -->
    <a href="#" id="back-to-top" class="back-to-top" aria-label="Back to top">
        <i class="fas fa-chevron-up"></i>
    </a>
    <script>
        window.addEventListener('scroll', function () {
            document.getElementById('back-to-top')
                .classList.toggle('visible', window.pageYOffset > 300);
        });
    </script>
"""


@_BUILTIN_RULES.register(_HTML, "visual-appeal")
def html_visual_appeal(content: str) -> EditPlan:
    if BACK_TO_TOP_MARKER in content or "</body>" not in content:
        return EditPlan()
    return _plan(
        [Insertion(before("</body>", Occurrence.LAST), _BACK_TO_TOP_HTML)],
        ["Added back-to-top button for long pages"],
    )


_UNVERIFIABLE_CLAIMS: tuple[tuple[RegexMatcher, str, str], ...] = (
    (
        RegexMatcher(
            r"\b(?:guaranteed|certified)\s+lowest\s+prices?\b",
            flags=re.IGNORECASE,
            all_matches=True,
        ),
        "competitive prices",
        "Softened lowest-price claims",
    ),
    (
        RegexMatcher(
            r"\bbest\s+(jewell?ers?|jewelry\s+(?:shop|store))\s+in\b",
            flags=re.IGNORECASE,
            all_matches=True,
        ),
        r"trusted \1 in",
        "Replaced superlative shop claims",
    ),
    (
        RegexMatcher(r"\bguaranteed\s+returns?\b", flags=re.IGNORECASE, all_matches=True),
        "lasting value",
        "Removed investment-return promises",
    ),
)


@_BUILTIN_RULES.register(_HTML, "compliance")
def html_compliance(content: str) -> EditPlan:
    edits: list[EditOperation] = []
    descriptions: list[str] = []
    for matcher, replacement, description in _UNVERIFIABLE_CLAIMS:
        if matcher.found_in(content):
            edits.append(Replacement(matcher, replacement))
            descriptions.append(description)
    return _plan(edits, descriptions)


# ===================================================================== #
#  Registry and entry point                                              #
# ===================================================================== #


def default_registry() -> RuleRegistry:
    """Build a fresh registry holding the built-in rules."""
    return _BUILTIN_RULES.copy()


def build_edits(
    registry: RuleRegistry,
    artifact: ArtifactSpec,
    content: str,
    category: CategorySpec,
) -> EditPlan:
    """Propose the edits *category* calls for on *artifact*'s *content*.

    Returns an empty plan for the no-op category, for pairs without a rule,
    and whenever the rule detects its change is already present.
    """
    if category.is_noop:
        return EditPlan()
    rule = registry.get(artifact.artifact_type, category.name)
    if rule is None:
        logger.info(
            "No %s rule for %s (%s)",
            category.name,
            artifact.path,
            artifact.artifact_type.value,
        )
        return EditPlan()
    return rule(content)
