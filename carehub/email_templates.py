"""
MJML Email Templates
"""

from typing import Optional

THEME = {
    "primary": "#2563eb",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML wrapper shared by every e-mail"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button href="{cta_url}" background-color="{THEME['primary']}" color="#ffffff"
              font-weight="600" border-radius="8px" padding="18px 40px" font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="40px 40px 32px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" padding="0 0 16px 0">
              {title}
            </mj-text>
            {content_sections}
          </mj-column>
        </mj-section>
        {cta_section}
        <mj-section padding="24px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="{THEME['text_muted']}">
              You're receiving this because you have an account with CareHub.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def password_reset_template(user_name: str, reset_link: str) -> str:
    content = f"""
    <mj-text>Hi {user_name},</mj-text>
    <mj-text>
      We received a request to reset your password. The link below is valid for one hour.
    </mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      If you didn't ask for this, you can ignore this e-mail.
    </mj-text>
    """
    return get_base_template(
        "Reset your password", "Reset your CareHub password", content, reset_link, "Reset password"
    )


def patient_welcome_template(patient_name: str, doctor_name: str, set_password_link: str) -> str:
    content = f"""
    <mj-text>Hi {patient_name},</mj-text>
    <mj-text>
      {doctor_name} added you as a patient on CareHub. Set your password to access your
      treatment protocols, daily check-ins and courses.
    </mj-text>
    """
    return get_base_template(
        "Welcome to CareHub", f"{doctor_name} invited you", content, set_password_link, "Set my password"
    )


def prescription_assigned_template(patient_name: str, doctor_name: str, protocol_name: str, start_date: str, link: str) -> str:
    content = f"""
    <mj-text>Hi {patient_name},</mj-text>
    <mj-text>
      {doctor_name} prescribed the protocol <strong>{protocol_name}</strong> for you,
      planned to start on {start_date}.
    </mj-text>
    """
    return get_base_template("New protocol prescribed", protocol_name, content, link, "Open protocol")


def referral_received_template(doctor_name: str, lead_name: str, lead_email: str, referrer_name: Optional[str], link: str) -> str:
    referrer_line = f"Referred by <strong>{referrer_name}</strong>." if referrer_name else "Submitted through your referral page."
    content = f"""
    <mj-text>Hi {doctor_name},</mj-text>
    <mj-text>You have a new referral: <strong>{lead_name}</strong> ({lead_email}).</mj-text>
    <mj-text>{referrer_line}</mj-text>
    """
    return get_base_template("New referral received", f"{lead_name} was referred to you", content, link, "View referrals")


def referral_credit_template(referrer_name: str, lead_name: str, balance: int, link: str) -> str:
    content = f"""
    <mj-text>Hi {referrer_name},</mj-text>
    <mj-text>
      <strong>{lead_name}</strong>, whom you referred, is now a patient. You earned a referral credit.
    </mj-text>
    <mj-text>Your available balance: <strong>{balance}</strong> credit(s).</mj-text>
    """
    return get_base_template("You earned a credit", "Your referral converted", content, link, "See my credits")


def doctor_invite_template(doctor_name: str, plan_name: str, is_trial: bool, trial_days: int, set_password_link: str) -> str:
    plan_line = (
        f"Your clinic starts on the <strong>{plan_name}</strong> plan with a {trial_days}-day free trial."
        if is_trial
        else f"Your clinic is on the <strong>{plan_name}</strong> plan, active immediately."
    )
    content = f"""
    <mj-text>Hi {doctor_name},</mj-text>
    <mj-text>You have been invited to join CareHub as a doctor. Set your password to get started.</mj-text>
    <mj-text>{plan_line}</mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      This link is valid for 7 days.
    </mj-text>
    """
    return get_base_template(
        "Welcome to CareHub", "Your doctor account is ready", content, set_password_link, "Set my password"
    )
