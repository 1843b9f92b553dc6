from urllib.parse import quote

from django.conf import settings
from django.utils.html import escape, linebreaks

ACCENT = {
    "approved": "#0f9d58",
    "rejected": "#d93025",
}


def dashboard_login_link() -> str:
    base = getattr(settings, "FRONTEND_BASE_URL", "").rstrip("/")
    return f"{base}/login?next={quote('/landlord/dashboard')}"


def listing_decision_email_html(*, decision: str, subject: str, body: str, listing_title: str, reason=None) -> str:
    """
    HTML part of the moderation e-mail.

    Every caller-supplied string is escaped here; `body` is plain text and
    its blank lines become paragraphs.
    """
    link = dashboard_login_link()
    accent = ACCENT.get(decision, "#356af0")

    reason_row = ""
    if reason:
        reason_row = (
            '<tr><td style="padding:4px 12px 4px 0;color:#777;">Reason</td>'
            f'<td style="padding:4px 0;color:#111;">{escape(reason)}</td></tr>'
        )

    return f"""
<!doctype html>
<html>
  <body style="font-family: Arial, sans-serif; background:#f4f5f7; padding:24px;">
    <div style="max-width:560px;margin:0 auto;background:#ffffff;border-top:4px solid {accent};padding:24px;">
      <h2 style="margin:0 0 16px 0;color:#111;">{escape(subject or "Rently update")}</h2>
      <div style="color:#333;line-height:1.5;">{linebreaks(body or "", autoescape=True)}</div>

      <table style="margin:12px 0 20px 0;font-size:14px;border-collapse:collapse;">
        <tr><td style="padding:4px 12px 4px 0;color:#777;">Listing</td>
            <td style="padding:4px 0;color:#111;">{escape(listing_title)}</td></tr>
        {reason_row}
      </table>

      <a href="{escape(link)}"
         style="display:inline-block;padding:10px 18px;border-radius:6px;
                background:{accent};color:#fff;text-decoration:none;">
        Go to my listings
      </a>
      <p style="margin:20px 0 0 0;color:#888;font-size:12px;">{escape(link)}</p>
    </div>
  </body>
</html>
""".strip()
