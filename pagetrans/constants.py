"""
Shared constants: marker attributes and the word lists used to keep code
and identifiers out of page translation.
"""

# Marker elements and attributes written into the page by the engine
LOADING_INDICATOR_CLASS = "translation-loading-indicator"
TRANSLATED_ATTR = "data-translated"
COMPARE_ATTR = "data-compare-translated"
COMPARE_ID_ATTR = "data-compare-id"
COMPARE_ORIGINAL_ATTR = "data-compare-original"

LOADING_INDICATOR_STYLE = (
    "display: inline-flex; align-items: center; margin-right: 6px; "
    "width: 16px; height: 16px; border: 2px solid #f3f3f3; "
    "border-top: 2px solid #1890ff; border-radius: 50%; "
    "animation: spin 1s linear infinite; vertical-align: middle;"
)

COMPARE_ORIGINAL_COLOR = "#888"
COMPARE_DEFAULT_COLOR = "#222"

# Synthetic engine name for per-site dictionary hits
CUSTOM_ENGINE = "custom"

PROGRAMMING_LANGUAGES = frozenset([
    "javascript", "typescript", "python", "java", "c", "c++", "c#", "go", "rust", "php", "ruby",
    "swift", "kotlin", "scala", "perl", "lua", "dart", "objective-c", "shell", "bash",
    "powershell", "sql", "html", "css", "json", "yaml", "xml", "r", "matlab", "groovy",
    "elixir", "clojure", "haskell", "fortran", "assembly", "erlang", "f#", "vb",
    "visual basic", "delphi",
])

CODE_FILE_SUFFIXES = (
    ".js", ".ts", ".jsx", ".tsx", ".c", ".cpp", ".h", ".hpp", ".py", ".java", ".go", ".rb",
    ".php", ".cs", ".swift", ".kt", ".m", ".sh", ".bat", ".pl", ".rs", ".dart", ".scala",
    ".lua", ".json", ".yaml", ".yml", ".xml", ".ini", ".conf", ".md", ".txt", ".csv", ".tsv",
    ".log", ".html", ".htm", ".css", ".scss", ".less", ".vue", ".svelte", ".lock", ".toml",
    ".gradle", ".make", ".mk", ".dockerfile", ".gitignore", ".gitattributes", ".env",
    ".config", ".properties", ".asm", ".sql", ".db", ".db3", ".sqlite", ".ps1", ".psm1",
    ".jsp", ".asp", ".aspx", ".vb", ".vbs", ".f90", ".f95", ".f03", ".f08", ".r", ".jl",
    ".groovy", ".erl", ".ex", ".exs", ".clj", ".cljs", ".edn", ".coffee", ".mjs", ".cjs",
    ".eslintrc", ".babelrc", ".npmrc", ".prettierrc", ".editorconfig", ".plist", ".crt",
    ".pem", ".key", ".csr", ".pub",
)

# Code viewers and editors (GitHub blobs, CodeMirror, Monaco, diff tables)
CODE_CONTAINER_SELECTORS = (
    ".blob-wrapper", ".blob-code", ".blob-code-inner", ".blob-code-marker",
    ".blob-code-context", ".blob-code-addition", ".blob-code-deletion", ".blob-num",
    ".blob-num-addition", ".blob-num-deletion", ".blob-num-context", ".blob-num-hunk",
    ".CodeMirror", ".CodeMirror-line", ".CodeMirror-code", ".CodeMirror-lines",
    ".cm-editor", ".cm-content", ".cm-line", ".cm-scroller", ".js-file-line",
    ".js-line-number", ".monaco-editor", ".monaco-scrollable-element", ".view-lines",
    ".view-line", ".highlight-source", ".pl-token", ".pl-c", ".pl-s", ".pl-k", ".pl-v",
    ".pl-en", ".pl-pds", ".pl-smi", ".pl-smw", ".code-list", ".code-list-item",
    ".search-code-line", ".file-diff", ".diff-table",
)

# Class-name fragments of syntax highlighters and code widgets
CODE_CLASS_KEYWORDS = (
    "highlight", "blob-code", "hljs", "language-", "editor", "CodeMirror", "monaco",
    "blob-textarea", "react-blob", "file-editor", "js-blob", "js-code", "cm-content",
    "blob-code-inner", "blob-code-marker", "blob-code-context", "blob-code-addition",
    "blob-code-deletion", "react-blob-textarea", "blob-wrapper", "blob-num", "file-diff",
    "diff-table", "js-file-line", "js-line-number", "code-list", "search-code-line",
    "highlight-source", "file-navigation", "js-navigation-item", "file-tree",
    "monaco-editor", "view-lines", "view-line",
    # Prism.js token classes
    "token", "keyword", "string", "comment", "number", "operator", "punctuation",
    "function", "class-name", "variable", "constant", "boolean", "regex",
    # generic code widgets
    "source-code", "syntax-highlight", "code-block", "code-snippet", "terminal",
    "console", "shell", "command-line", "output",
)

# Containers in which a monospace font means "this is code"
MONOSPACE_CODE_CONTAINERS = ".highlight, .blob-code, .CodeMirror, .monaco-editor, pre, code"

MONOSPACE_FONTS = ("monospace", "Monaco", "Consolas", "Courier")

CODE_ATTRIBUTES = ("data-code-marker", "data-line-number", "data-file-type")

EXCLUDE_TAGS = frozenset(["code", "pre", "samp", "kbd", "var", "script", "style", "textarea", "input"])

INPUT_TAGS = frozenset(["input", "textarea", "select"])
