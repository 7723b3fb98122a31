import smtplib
from email.message import EmailMessage

from flask import current_app

from booking.pricing import format_price


def send_email(to_email: str, subject: str, body: str):
    host = current_app.config.get("SMTP_HOST")
    port = current_app.config.get("SMTP_PORT", 587)
    username = current_app.config.get("SMTP_USERNAME")
    password = current_app.config.get("SMTP_PASSWORD")
    from_email = current_app.config.get("SMTP_FROM_EMAIL") or username
    use_tls = current_app.config.get("SMTP_USE_TLS", True)

    if not host or not from_email:
        return False, "Email not configured"

    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(host, port, timeout=10) as server:
            if use_tls:
                server.starttls()
            if username and password:
                server.login(username, password)
            server.send_message(msg)
        return True, None
    except (smtplib.SMTPException, OSError) as exc:
        current_app.logger.warning("Email to %s failed: %s", to_email, exc)
        return False, str(exc)


def send_booking_confirmation(user, event, pricing=None):
    """Best effort; a failed email never fails the booking."""
    when = f"{event.start_time:%A %d %B %Y}, {event.start_time:%H:%M}-{event.end_time:%H:%M}"
    lines = [
        f"Hi {user.first_name or 'there'},",
        "",
        f"Your booking is confirmed: {event.name}",
        f"When: {when}",
    ]
    if event.courts:
        lines.append("Court: " + ", ".join(c.name for c in event.courts))
    if event.coach is not None:
        lines.append(f"Coach: {event.coach.display_name}")
    if pricing is not None:
        lines.append(f"Total: {format_price(pricing.final_price)}")
        if pricing.discount_amount:
            lines.append(
                f"Includes {pricing.membership_type} discount ({pricing.discount_percentage:g}%): "
                f"-{format_price(pricing.discount_amount)}"
            )
    return send_email(user.email, f"Booking confirmed: {event.name}", "\n".join(lines))
