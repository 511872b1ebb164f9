from curlbot.prompts.system_prompt import SUMMARY_HEADER, SYSTEM_PROMPT

__all__ = ["SUMMARY_HEADER", "SYSTEM_PROMPT"]
