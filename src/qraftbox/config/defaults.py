"""Starter .qraftbox.toml template."""

CONFIG_FILENAME = ".qraftbox.toml"

DEFAULT_TOML = """\
# qraftbox configuration

[git]
timeout_ms = 30000          # per git command

[diff]
context_lines = 3
include_untracked = true
auto_base = false           # on feature branches, diff against merge-base with main/master

[tree]
mode = "all"                # all | changed

[output]
format = "terminal"         # terminal | json | yaml

[logging]
level = "warning"           # debug | info | warning | error
"""
