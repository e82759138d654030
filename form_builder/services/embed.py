from __future__ import annotations

from form_builder.core.config import settings

EMBED_CONTAINER_PREFIX = "serviceos-form-"


def build_embed_snippet(form_id: str) -> str:
    if not form_id:
        return ""
    container_id = f"{EMBED_CONTAINER_PREFIX}{form_id}"
    script_url = settings.embed_script_url
    return "\n".join(
        [
            f'<div id="{container_id}" data-serviceos-form-id="{form_id}" '
            'style="width: 100%; max-width: 800px; margin: 0 auto;">Loading your form...</div>',
            f'<script src="{script_url}" async></script>',
            "<script>",
            "    document.addEventListener('DOMContentLoaded', () => {",
            "        if (window.renderServiceOSForm) {",
            f"            window.renderServiceOSForm('{form_id}', '{container_id}');",
            "        } else {",
            "            console.error('ServiceOS form embed script not loaded correctly. Please check the script URL.');",
            "        }",
            "    });",
            "</script>",
        ]
    )
