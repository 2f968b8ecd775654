"""
L0 Data — Package recipe catalog.

Well-known packages and how each manager provides them. Pure data,
no logic beyond the lookup helper.

Recipe fields:
    label              Human-readable name.
    category           ``desktop`` (snap first), ``system`` (apt first)
                       or ``any`` (failure history decides).
    cli                Binary whose presence on PATH satisfies the request.
    apt                Debian package name (absent: not in the archive).
    snap               Snap name (absent: no snap).
    classic            Snap needs classic confinement.
    manual             argv of an upstream installer (optional).
    manual_needs_sudo  Whether the manual argv must run as root.
"""

from __future__ import annotations

PACKAGE_CATALOG: dict[str, dict] = {

    # ── Desktop applications (snap first) ───────────────────────

    "vscode": {
        "label": "Visual Studio Code",
        "category": "desktop",
        "cli": "code",
        "apt": "code",
        "snap": "code",
        "classic": True,
    },
    "code": {
        "label": "Visual Studio Code",
        "category": "desktop",
        "cli": "code",
        "apt": "code",
        "snap": "code",
        "classic": True,
    },
    "vlc": {
        "label": "VLC media player",
        "category": "desktop",
        "cli": "vlc",
        "apt": "vlc",
        "snap": "vlc",
    },
    "gimp": {
        "label": "GIMP",
        "category": "desktop",
        "cli": "gimp",
        "apt": "gimp",
        "snap": "gimp",
    },
    "libreoffice": {
        "label": "LibreOffice",
        "category": "desktop",
        "cli": "libreoffice",
        "apt": "libreoffice",
        "snap": "libreoffice",
    },
    "alacritty": {
        "label": "Alacritty",
        "category": "desktop",
        "cli": "alacritty",
        "apt": "alacritty",
        "snap": "alacritty",
        "classic": True,
    },
    "tilix": {
        "label": "Tilix",
        "category": "desktop",
        "cli": "tilix",
        "apt": "tilix",
    },
    "flameshot": {
        "label": "Flameshot",
        "category": "desktop",
        "cli": "flameshot",
        "apt": "flameshot",
        "snap": "flameshot",
    },
    "postman": {
        "label": "Postman",
        "category": "desktop",
        "cli": "postman",
        "snap": "postman",
    },
    "slack": {
        "label": "Slack",
        "category": "desktop",
        "cli": "slack",
        "snap": "slack",
    },
    "spotify": {
        "label": "Spotify",
        "category": "desktop",
        "cli": "spotify",
        "snap": "spotify",
    },

    # ── System utilities (apt first) ────────────────────────────

    "curl": {
        "label": "curl",
        "category": "system",
        "cli": "curl",
        "apt": "curl",
        "snap": "curl",
    },
    "jq": {
        "label": "jq",
        "category": "system",
        "cli": "jq",
        "apt": "jq",
        "snap": "jq",
    },
    "git": {
        "label": "Git",
        "category": "system",
        "cli": "git",
        "apt": "git",
    },
    "gh": {
        "label": "GitHub CLI",
        "category": "system",
        "cli": "gh",
        "apt": "gh",
        "snap": "gh",
    },
    "htop": {
        "label": "htop",
        "category": "system",
        "cli": "htop",
        "apt": "htop",
        "snap": "htop",
    },
    "btop": {
        "label": "btop",
        "category": "system",
        "cli": "btop",
        "apt": "btop",
        "snap": "btop",
    },
    "ripgrep": {
        "label": "ripgrep",
        "category": "system",
        "cli": "rg",
        "apt": "ripgrep",
        "snap": "ripgrep",
        "classic": True,
    },
    "bat": {
        "label": "bat",
        "category": "system",
        # Debian ships the binary as batcat
        "cli": "batcat",
        "apt": "bat",
    },
    "fd": {
        "label": "fd",
        "category": "system",
        "cli": "fdfind",
        "apt": "fd-find",
    },
    "fzf": {
        "label": "fzf",
        "category": "system",
        "cli": "fzf",
        "apt": "fzf",
    },
    "tmux": {
        "label": "tmux",
        "category": "system",
        "cli": "tmux",
        "apt": "tmux",
    },
    "zsh": {
        "label": "Zsh",
        "category": "system",
        "cli": "zsh",
        "apt": "zsh",
    },
    "podman": {
        "label": "Podman",
        "category": "system",
        "cli": "podman",
        "apt": "podman",
    },
    "python3": {
        "label": "Python 3",
        "category": "system",
        "cli": "python3",
        "apt": "python3",
    },

    # ── Equally applicable (failure history decides) ────────────

    "docker": {
        "label": "Docker",
        "category": "any",
        "cli": "docker",
        "apt": "docker.io",
        "snap": "docker",
        "manual": ["sh", "-c", "curl -fsSL https://get.docker.com | sh"],
        "manual_needs_sudo": True,
    },
    "node": {
        "label": "Node.js",
        "category": "any",
        "cli": "node",
        "apt": "nodejs",
        "snap": "node",
        "classic": True,
    },
    "go": {
        "label": "Go",
        "category": "any",
        "cli": "go",
        "apt": "golang-go",
        "snap": "go",
        "classic": True,
    },
    "kubectl": {
        "label": "kubectl",
        "category": "any",
        "cli": "kubectl",
        "snap": "kubectl",
        "classic": True,
    },
    "helm": {
        "label": "Helm",
        "category": "any",
        "cli": "helm",
        "snap": "helm",
        "classic": True,
        "manual": [
            "bash", "-c",
            "curl -fsSL https://raw.githubusercontent.com/helm/helm/main/"
            "scripts/get-helm-3 | bash",
        ],
        "manual_needs_sudo": True,
    },
}


def get_recipe(
    package_name: str,
    extra: dict[str, dict] | None = None,
) -> dict | None:
    """Look up a recipe, letting ``extra`` entries override the built-ins.

    Returns:
        The recipe dict, or ``None`` for a package the catalog does not know.
    """
    if extra and package_name in extra:
        return extra[package_name]
    return PACKAGE_CATALOG.get(package_name)
