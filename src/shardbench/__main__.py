from shardbench.cli import main

raise SystemExit(main())
