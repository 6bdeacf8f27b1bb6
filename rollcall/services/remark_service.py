"""
Gemini integration for member performance remarks.

Uses the Gemini generateContent REST endpoint to write a short (1-2 sentence)
remark from a member's attendance summary. Failures never raise; the caller
always gets a string back.

Requires: GEMINI_API_KEY environment variable
"""

import requests
from flask import current_app


class RemarkService:
    """Service for generating attendance remarks via Gemini."""

    GENERATE_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    NOT_CONFIGURED = "API Key not configured. Could not generate remark."
    API_ERROR = "Could not generate remark due to an API error."

    def is_configured(self) -> bool:
        """Check if the API key is configured."""
        return bool(current_app.config.get('GEMINI_API_KEY'))

    def build_prompt(self, member_name: str, attendance_summary: str) -> str:
        group_name = current_app.config.get('GROUP_NAME', 'Vakratunda')
        return (
            f"As a manager for the '{group_name}' group, write a concise and professional "
            f"performance remark (1-2 sentences) for a member named {member_name}. "
            f"Be encouraging but factual based on their attendance. "
            f"The summary is: \"{attendance_summary}\""
        )

    def generate_remark(self, member_name: str, attendance_summary: str) -> str:
        """
        Generate a remark for a member.

        Args:
            member_name: Display name of the member
            attendance_summary: Free-text summary, e.g. from aggregator.summary_text()

        Returns:
            The generated remark, or a fallback message if the API is unavailable
        """
        api_key = current_app.config.get('GEMINI_API_KEY')
        if not api_key:
            return self.NOT_CONFIGURED

        try:
            headers = {
                'Content-Type': 'application/json',
                'x-goog-api-key': api_key,
            }

            body = {
                'contents': [{
                    'parts': [{'text': self.build_prompt(member_name, attendance_summary)}]
                }],
                'generationConfig': {
                    'temperature': 0.5,
                    'topP': 0.95,
                    'topK': 64,
                },
            }

            response = requests.post(
                self.GENERATE_URL.format(model=current_app.config.get('GEMINI_MODEL', 'gemini-2.5-flash')),
                headers=headers,
                json=body,
                timeout=20
            )

            if response.status_code != 200:
                current_app.logger.error(f"Gemini API error: {response.status_code} - {response.text}")
                return self.API_ERROR

            data = response.json()
            candidates = data.get('candidates', [])
            if not candidates:
                return ""

            parts = candidates[0].get('content', {}).get('parts', [])
            return ''.join(part.get('text', '') for part in parts).strip()

        except requests.exceptions.Timeout:
            current_app.logger.error("Gemini API timeout")
            return self.API_ERROR
        except Exception as e:
            current_app.logger.error(f"Error generating performance remark: {e}")
            return self.API_ERROR


# Singleton instance
remark_service = RemarkService()
