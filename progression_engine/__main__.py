from progression_engine.main import main

raise SystemExit(main())
