"""
============================================================================
Alerting Hooks - Notifications Teams de l'import SQL
============================================================================
"""

from datetime import datetime
from typing import Optional

import requests
from dagster import HookContext, failure_hook, success_hook

from dumpimport.config.settings import get_settings
from dumpimport.utils.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Helpers - Notifications
# =============================================================================

def send_teams_notification(
    webhook_url: str,
    title: str,
    message: str,
    color: str = "0078D4",
    facts: Optional[dict] = None,
    action_url: Optional[str] = None,
) -> bool:
    """
    Envoie notification Teams via webhook (format MessageCard).

    Args:
        webhook_url: URL du webhook Teams
        title: Titre de la notification
        message: Message principal
        color: Couleur (hex sans #)
        facts: Dict de faits additionnels
        action_url: URL pour bouton d'action

    Returns:
        True si succès
    """
    card = {
        "@type": "MessageCard",
        "@context": "https://schema.org/extensions",
        "summary": title,
        "themeColor": color,
        "title": title,
        "text": message,
    }

    if facts:
        card["sections"] = [{
            "activityTitle": "Détails de l'import",
            "facts": [{"name": k, "value": str(v)} for k, v in facts.items()]
        }]

    if action_url:
        card["potentialAction"] = [{
            "@type": "OpenUri",
            "name": "Voir dans Dagster",
            "targets": [{"os": "default", "uri": action_url}]
        }]

    try:
        response = requests.post(webhook_url, json=card, timeout=10)
        response.raise_for_status()
        logger.info("Teams notification sent", title=title)
        return True

    except requests.RequestException as e:
        logger.error("Teams notification failed", title=title, error=str(e))
        return False


# =============================================================================
# Hooks Dagster
# =============================================================================

@failure_hook
def alert_on_failure(context: HookContext):
    """Notification Teams sur échec d'un op de l'import"""
    settings = get_settings()
    if not settings.teams_webhook_url:
        return

    run_url = f"{settings.dagster_url}/runs/{context.run_id}"
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    error = context.op_exception
    error_message = getattr(error, "description", None) or str(error) or "unknown error"

    send_teams_notification(
        webhook_url=settings.teams_webhook_url,
        title="❌ SQL Import Failed",
        message=f"**Job:** {context.job_name}\n**Step:** `{context.step_key}`\n**Error:** {error_message}",
        color="FF0000",
        facts={
            "Job": context.job_name,
            "Step": context.step_key,
            "Run ID": context.run_id[:8] + "...",
            "Time": timestamp,
            "Status": "FAILED",
        },
        action_url=run_url,
    )


@success_hook
def alert_on_success(context: HookContext):
    """Notification Teams avec les volumes importés (op import_sql_dump uniquement)"""
    settings = get_settings()
    if not settings.teams_webhook_url or context.op.name != "import_sql_dump":
        return

    output = (context.op_output_values or {}).get("result") or {}
    response = output.get("response", {})
    inserted = response.get("inserted", {})

    facts = {entity: f"{count:,}" for entity, count in inserted.items() if count}
    facts["Run ID"] = context.run_id[:8] + "..."

    send_teams_notification(
        webhook_url=settings.teams_webhook_url,
        title="✅ SQL Import Succeeded",
        message=f"**Job:** {context.job_name}\n**Rows:** {sum(inserted.values()):,}",
        color="28A745",
        facts=facts,
        action_url=f"{settings.dagster_url}/runs/{context.run_id}",
    )
