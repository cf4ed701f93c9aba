from mdboard.cli import main

raise SystemExit(main())
