"""
Bulwark - Discord Moderation and Utility Bot

Bulwark routes chat messages to prefixed commands, keeps multi-message
command sessions alive across messages and stores per-server configuration.

Core Components:

- **Dispatcher**: Parses prefixed messages and gates them on permission
  level, cooldowns and per-guild command toggles
- **Command Sessions**: Per-(channel, user) command caches with expiry, so a
  command can carry on a conversation over several messages
- **Guild Settings**: Lazily loaded per-server prefix, staff ranks, command
  toggles, usage limits and megalog routing
- **Filters**: Checks on plain member messages (e.g. invite links)
- **Maintenance**: Periodic sweeps of expired sessions and stale records

Usage:
    from bulwark.main import main
    main()
"""
