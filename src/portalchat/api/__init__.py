# portalchat HTTP projection.
# Created: 2026-10-12
