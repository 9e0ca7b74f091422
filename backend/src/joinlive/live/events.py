"""Message type names used on the live session websocket."""

# Client -> server
SELECT_CHANNEL = "selectChannel"
DESELECT_CHANNEL = "deselectChannel"
SELECT_MULTIPLE_CHANNELS = "selectMultipleChannels"
PARTICIPANT_JOIN = "participantJoin"
PARTICIPANT_LEAVE = "participantLeave"
START_COUNTDOWN = "startCountdown"
CANCEL_COUNTDOWN = "cancelCountdown"
SUBMIT_MESSAGE = "submitMessage"
APPROVE_MESSAGE = "approveMessage"
REJECT_MESSAGE = "rejectMessage"
GET_MESSAGES = "getMessages"
EDITOR_MESSAGE = "editorMessage"
PAIR_PARTICIPANTS = "pairParticipants"
UNPAIR_PARTICIPANTS = "unpairParticipants"

# Sent in both directions
COUNTDOWN_UPDATE = "countdownUpdate"
PING = "ping"
PONG = "pong"

# Server -> client
CHANNEL_SELECTED = "channelSelected"
CHANNEL_DESELECTED = "channelDeselected"
MULTIPLE_CHANNELS_SELECTED = "multipleChannelsSelected"
COUNTDOWN_START = "countdownStart"
COUNTDOWN_CANCELLED = "countdownCancelled"
PARTICIPANT_JOINED = "participantJoined"
PARTICIPANT_LEFT = "participantLeft"
PARTICIPANT_PAIRED = "participantPaired"
PARTICIPANT_UNPAIRED = "participantUnpaired"
NEW_MESSAGE_IN_QUEUE = "newMessageInQueue"
MESSAGE_APPROVED = "messageApproved"
MESSAGE_REJECTED = "messageRejected"
EDITOR_MESSAGE_RECEIVED = "editorMessageReceived"
MESSAGE_SUBMITTED = "messageSubmitted"
MESSAGES_DATA = "messagesData"
