"""Platform-wide contact settings and WhatsApp link helpers"""
import re
from urllib.parse import quote

from .models import PlatformSetting


def get_platform_settings():
    return PlatformSetting.load()


def format_message(template, values):
    """Replace {key} placeholders with values; unknown placeholders are left untouched"""
    if not template:
        return ''

    def replace(match):
        key = match.group(1)
        if key in values and values[key] is not None:
            return str(values[key])
        return match.group(0)

    return re.sub(r'\{(\w+)\}', replace, template)


def format_whatsapp_url(number, message=''):
    digits = re.sub(r'\D', '', number or '')
    if not digits:
        return None
    url = f"https://wa.me/{digits}"
    if message:
        url += f"?text={quote(message)}"
    return url


def build_contact_link(values):
    """WhatsApp link to the sales number with the configured message filled in"""
    settings_obj = get_platform_settings()
    message = format_message(settings_obj.message_template, values)
    return {
        'whatsapp_number': settings_obj.whatsapp_number,
        'cta_text': settings_obj.cta_text,
        'message': message,
        'url': format_whatsapp_url(settings_obj.whatsapp_number, message),
    }
