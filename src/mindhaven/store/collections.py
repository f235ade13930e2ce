"""Collection names used by the services layer."""

COMMUNITIES = "communities"
COMMUNITY_MEMBERS = "community_members"
POSTS = "posts"
POST_LIKES = "post_likes"
POST_COMMENTS = "post_comments"
CHAT_MESSAGES = "chat_messages"
NOTIFICATIONS = "notifications"
USERS = "users"
