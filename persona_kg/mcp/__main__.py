from persona_kg.mcp.server import main

main()
