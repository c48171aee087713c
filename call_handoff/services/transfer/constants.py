"""Constants for the call transfer flow."""

TRANSFER_TOOL_NAME = "call-transfer"
SUMMARY_ARGUMENT = "conversation_summary"

# Appended to the base prompt per transfer mode
COLD_TRANSFER_INSTRUCTIONS = (
    " When you call the tool to transfer the call let the caller know you are"
    " going to transfer them and then immediately call the call-transfer tool."
)
WARM_TRANSFER_INSTRUCTIONS = (
    " When you call the tool to transfer the call provide a brief summary of the"
    " call with the user so far. Let the caller know you are going to transfer"
    " them and then immediately call the call-transfer tool."
)

# Tool results returned to the LLM
TRANSFER_ACCEPTED_RESULT = (
    "Successfully transferred call to agent, telling user to wait for a moment."
)
TRANSFER_FAILED_RESULT = "Failed to transfer call"
TRANSFER_IN_PROGRESS_RESULT = "Transfer already in progress"
UNKNOWN_TOOL_RESULT = "Unknown tool"
TRANSFER_UNAVAILABLE_RESULT = "Call transfer is not available on this call"
MISSING_SUMMARY_RESULT = "conversation_summary is required"

# Caller/callee narration
CALL_ENDED_TEXT = "The call has ended"
SUMMARY_PREFIX = "The summary of the conversation so far is: "

# Seconds
INITIAL_PAUSE = 0.5
CONFIRM_PAUSE = 1
