"""
Email templates for Microlearning Coach.

All templates use inline CSS for maximum email client compatibility.
Each template function returns (subject, html_body, text_body).
"""

from __future__ import annotations

from html import escape

# Color constants
BG_PAGE = "#F3F4F6"
BG_CARD = "#FFFFFF"
BLUE = "#3B82F6"
AMBER = "#F59E0B"
GREEN = "#10B981"
GREEN_SURFACE = "#F0FDF4"
TEXT_PRIMARY = "#111827"
TEXT_SECONDARY = "#4B5563"
BORDER = "#E5E7EB"

APP_NAME = "Microlearning Coach"


def _base_layout(content: str) -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{APP_NAME}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_PAGE}; font-family: Arial, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: {BG_PAGE};">
        <tr>
            <td align="center" style="padding: 40px 20px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="600" style="max-width: 600px; width: 100%;">
                    <tr>
                        <td style="background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 8px; padding: 32px;">
                            {content}
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding-top: 24px;">
                            <p style="color: {TEXT_SECONDARY}; font-size: 12px; line-height: 1.5; margin: 0;">
                                You are receiving this email because you have an account on {APP_NAME}.<br>
                                You can turn off email notifications in your profile.
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def _button(url: str, label: str, color: str) -> str:
    return (
        f'<a href="{escape(url, quote=True)}" target="_blank" '
        f'style="background: {color}; color: white; padding: 12px 24px; text-decoration: none; '
        f'border-radius: 6px; display: inline-block;">{label}</a>'
    )


def welcome_email(display_name: str | None, app_url: str) -> tuple[str, str, str]:
    """
    Welcome email sent when the identity provider reports a new account.

    Returns:
        (subject, html_body, text_body)
    """
    name = display_name or "Learner"
    dashboard_url = f"{app_url.rstrip('/')}/dashboard"
    subject = f"Welcome to {APP_NAME}! \U0001f3af"
    content = f"""\
<h1 style="color: {BLUE}; margin: 0 0 16px 0;">Welcome to {APP_NAME}!</h1>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6;">Hi {escape(name)},</p>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6;">
    We're excited to have you join our learning community! Get ready to master new skills in just minutes a day.
</p>
<div style="background: {BG_PAGE}; padding: 20px; border-radius: 8px; margin: 20px 0;">
    <h3 style="margin-top: 0;">\U0001f680 Get Started:</h3>
    <ul>
        <li>Complete your profile setup</li>
        <li>Browse our lesson library</li>
        <li>Start your first lesson</li>
        <li>Build your learning streak</li>
    </ul>
</div>
{_button(dashboard_url, "Start Learning", BLUE)}"""
    text_body = (
        f"Hi {name},\n\n"
        f"Welcome to {APP_NAME}! Get ready to master new skills in just minutes a day.\n\n"
        f"Get started:\n"
        f"- Complete your profile setup\n"
        f"- Browse our lesson library\n"
        f"- Start your first lesson\n"
        f"- Build your learning streak\n\n"
        f"{dashboard_url}\n\n"
        f"-- The {APP_NAME} Team"
    )
    return subject, _base_layout(content), text_body


def streak_reminder(display_name: str | None, streak: int, app_url: str) -> tuple[str, str, str]:
    """
    Streak-at-risk reminder.

    Returns:
        (subject, html_body, text_body)
    """
    name = display_name or "Learner"
    lessons_url = f"{app_url.rstrip('/')}/lessons"
    subject = f"Don't break your {streak}-day streak! \U0001f525"
    content = f"""\
<h1 style="color: {AMBER}; margin: 0 0 16px 0;">Your streak is at risk! \U0001f525</h1>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6;">Hi {escape(name)},</p>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6;">
    You've built an amazing {streak}-day learning streak. Don't let it end today!
</p>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6;">
    Complete just one quick lesson to keep your momentum going.
</p>
{_button(lessons_url, "Continue Streak", AMBER)}"""
    text_body = (
        f"Hi {name},\n\n"
        f"You've built a {streak}-day learning streak. Don't let it end today!\n"
        f"Complete just one quick lesson to keep your momentum going:\n\n"
        f"{lessons_url}\n\n"
        f"-- The {APP_NAME} Team"
    )
    return subject, _base_layout(content), text_body


def achievement_unlocked(
    display_name: str | None,
    achievement_name: str,
    description: str,
    icon: str,
    points: int,
    app_url: str,
) -> tuple[str, str, str]:
    """
    Achievement unlock congratulation.

    Returns:
        (subject, html_body, text_body)
    """
    name = display_name or "Learner"
    achievements_url = f"{app_url.rstrip('/')}/achievements"
    subject = f"\U0001f3c6 Achievement Unlocked: {achievement_name}"
    content = f"""\
<h1 style="color: {GREEN}; margin: 0 0 16px 0;">Achievement Unlocked! \U0001f3c6</h1>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6;">Hi {escape(name)},</p>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6;">
    Congratulations! You've unlocked the <strong>{escape(achievement_name)}</strong> achievement.
</p>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6;">{escape(description)}</p>
<div style="background: {GREEN_SURFACE}; padding: 20px; border-radius: 8px; margin: 20px 0; text-align: center;">
    <div style="font-size: 48px; margin-bottom: 10px;">{icon}</div>
    <h3 style="color: {TEXT_PRIMARY};">{escape(achievement_name)}</h3>
    <p style="color: {TEXT_SECONDARY};">+{points} points earned!</p>
</div>
{_button(achievements_url, "View All Achievements", GREEN)}"""
    text_body = (
        f"Hi {name},\n\n"
        f"Congratulations! You've unlocked the {achievement_name} achievement.\n"
        f"{description}\n\n"
        f"+{points} points earned!\n\n"
        f"{achievements_url}\n\n"
        f"-- The {APP_NAME} Team"
    )
    return subject, _base_layout(content), text_body
