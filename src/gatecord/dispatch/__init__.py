"""Command dispatch: request resolution, registry, gate chain, cooldowns and the pipeline.

Modules:
- errors.py: DispatchError taxonomy
- resolver.py: message text / interaction payload -> ParsedInvocation
- registry.py: command descriptors, alias index, hot reload
- cooldown.py: in-memory cooldown throttle
- gates.py: ordered authorization gate chain
- context.py: BotServices and CommandContext
- pipeline.py: ties everything together for both surfaces
"""
