"""
utils/constants.py

Purpose: Centralized static content

- User-facing messages (SMS, email subjects and bodies, notifications)
- Reusable limits and lists

(Prevents hardcoding across the codebase)
"""

# ============================================================
# OTP
# ============================================================

SMS_OTP_MESSAGE = (
    "Your Second Home verification code is: {otp}. "
    "Valid for 10 minutes. Never share this code with anyone."
)

EMAIL_OTP_SUBJECTS = {
    "registration": "🔐 Verify Your Email - Second Home Property Owner Registration",
    "password-reset-owner": "🔐 Property Owner Password Reset - Second Home",
    "password-reset": "🔐 Password Reset OTP - Second Home",
    "login": "🔐 Your Login OTP - Second Home",
    "phone-verification": "🔐 Your Verification Code - Second Home",
}

EMAIL_OTP_PURPOSE = {
    "registration": "complete your property owner registration",
    "password-reset": "reset your password",
    "login": "sign in to your account",
    "phone-verification": "verify your account",
}

EMAIL_OTP_HTML = """<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
      <h1 style="color: #ff6b35;">🏠 Second Home</h1>
      <p>Use the code below to {purpose}:</p>
      <div style="border: 2px dashed #ff6b35; padding: 24px; text-align: center;">
        <span style="font-size: 40px; font-weight: bold; letter-spacing: 10px;">{otp}</span>
      </div>
      <p>This code is valid for <strong>10 minutes</strong>.</p>
      <p style="color: #888;">If you did not request this, you can ignore this email. Never share this code.</p>
    </div>
  </body>
</html>"""

EMAIL_OTP_TEXT = (
    "Your Second Home code is {otp}. Use it to {purpose}. "
    "It is valid for 10 minutes. Never share this code."
)

# ============================================================
# AUTH
# ============================================================

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
SOCIAL_LOGIN_MESSAGE = (
    "This account uses Google sign-in. Please continue with Google "
    "or set a password with the forgot-password flow."
)
DUPLICATE_ACCOUNT_MESSAGE = (
    "Multiple accounts match this email. Please contact support."
)
PASSWORD_RESET_UNKNOWN_MESSAGE = "If this email exists, an OTP will be sent."

MIN_PASSWORD_LENGTH = 6
# bcrypt only hashes the first 72 bytes
MAX_PASSWORD_BYTES = 72
MIN_NAME_LENGTH = 2

# ============================================================
# LISTINGS
# ============================================================

MAX_PAGE_SIZE = 50
DEFAULT_PAGE_SIZE = 12
VIEW_NOTIFICATION_WINDOW_MINUTES = 60

ADMIN_NEW_LISTING_SUBJECT = "🏠 {badge}New {kind} Listing - {title}"

ADMIN_NEW_LISTING_HTML = """<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; color: #333;">
    <h2>New {kind} listing awaiting review</h2>
    <p><strong>{title}</strong> in {city}</p>
    <p>Price: {price}</p>
    <p>Owner: {owner_name} ({owner_email})</p>
    {ai_block}
    <p><a href="{admin_url}">Open the admin dashboard</a></p>
  </body>
</html>"""

AI_REVIEW_BLOCK_HTML = """<div style="border-left: 4px solid {color}; padding: 12px;">
      <p><strong>AI review:</strong> {recommendation} (score {score}/100, confidence {confidence}%)</p>
      <p>{summary}</p>
    </div>"""

# ============================================================
# MESS SUBSCRIPTIONS
# ============================================================

SUBSCRIPTION_USER_SUBJECT = "SecondHome: Subscription request created for {mess_name}"
SUBSCRIPTION_OWNER_SUBJECT = "SecondHome: New subscription request for {mess_name}"

SUBSCRIPTION_USER_TEXT = """Hi {name},

Your subscription request for {mess_name} has been created.

Start date: {start_date}
End date: {end_date}
Monthly price: {price}

The mess owner will contact you to confirm.

- Team SecondHome"""

SUBSCRIPTION_OWNER_TEXT = """New subscription request for {mess_name}.

Subscriber: {name}
Email: {email}
Phone: {phone}
Start date: {start_date}
End date: {end_date}
Monthly price: {price}

- Team SecondHome"""

# ============================================================
# BLOG
# ============================================================

BLOG_CATEGORIES = [
    "PG Accommodation",
    "Flats & Apartments",
    "Student Life",
    "Rental Guide",
    "Budget Tips",
    "Location Guide",
    "Tips & Guides",
    "Real Estate",
    "General",
]
DEFAULT_BLOG_AUTHOR = "SecondHome"
DEFAULT_BLOG_CATEGORY = "General"
EXCERPT_FALLBACK_LENGTH = 200

# ============================================================
# NEWSLETTER
# ============================================================

NEWSLETTER_INSTANT_SUBJECT = "🔥 NEW! {title} - {location}"

NEWSLETTER_FALLBACK_TEXT = """A new listing just went live on SecondHome!

{title}
Location: {location}
Price: {price}/month

{description}

View it here: {link}"""

NEWSLETTER_FOOTER_HTML = """<hr>
<p style="font-size: 12px; color: #888;">
  You are receiving this because you subscribed to SecondHome updates.
  <a href="{unsubscribe_url}">Unsubscribe</a>
</p>"""
